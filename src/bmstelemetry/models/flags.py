"""Data-quality flags attached to every reading."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class FlagKind(StrEnum):
    CELL_COUNT_MISMATCH = "CellCountMismatch"
    EMPTY_TEMPERATURE_ARRAY = "EmptyTemperatureArray"
    OUT_OF_PLAUSIBLE_RANGE = "OutOfPlausibleRange"
    BALANCING_BIT_OUT_OF_RANGE = "BalancingBitOutOfRange"
    UNKNOWN_BITS = "UnknownBits"
    STALE_OR_REORDERED = "StaleOrReordered"
    NO_DATA = "NoData"
    REPORTED_AGGREGATE_MISMATCH = "ReportedAggregateMismatch"


class ValidationFlag(BaseModel):
    """One named anomaly found on a frame.

    ``field``/``index`` locate the offending value, ``mask`` carries the
    offending bits for bitmask flags.
    """

    model_config = ConfigDict(frozen=True)

    kind: FlagKind
    field: str | None = None
    index: int | None = None
    mask: int | None = None
    detail: str | None = None

    def __str__(self) -> str:
        target = self.field or ""
        if self.index is not None:
            target = f"{target}[{self.index}]"
        if self.mask is not None:
            target = f"{target}=0x{self.mask:X}" if target else f"0x{self.mask:X}"
        return f"{self.kind.value}({target})" if target else self.kind.value


class ValidationStatus(BaseModel):
    """``Clean`` when no flags were raised, otherwise ``Flagged`` with ordered reasons."""

    model_config = ConfigDict(frozen=True)

    flags: tuple[ValidationFlag, ...] = Field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return not self.flags

    @property
    def kinds(self) -> frozenset[FlagKind]:
        return frozenset(flag.kind for flag in self.flags)

    def has(self, kind: FlagKind) -> bool:
        return any(flag.kind == kind for flag in self.flags)

    def __str__(self) -> str:
        if self.is_clean:
            return "Clean"
        return "Flagged{" + ", ".join(str(flag) for flag in self.flags) + "}"


CLEAN = ValidationStatus()
