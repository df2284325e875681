"""Frame validation.

This is the only component allowed to declare a frame unusable, and it
still never raises for bad telemetry: every problem becomes a
:class:`ValidationFlag` and the caller decides what to do with it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from bmstelemetry.aggregate import Aggregate, NoData
from bmstelemetry.codec import BitTable
from bmstelemetry.config import EngineConfig, PlausibleRange
from bmstelemetry.models.flags import FlagKind, ValidationFlag
from bmstelemetry.models.frame import RawFrame

_logger = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    """The untouched frame plus the flags raised against it (empty = clean)."""

    model_config = ConfigDict(frozen=True)

    frame: RawFrame
    flags: tuple[ValidationFlag, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.flags


def _range_flags(field: str, values: Iterable[float], plausible: PlausibleRange) -> Iterator[ValidationFlag]:
    for index, value in enumerate(values):
        if not plausible.contains(value):
            yield ValidationFlag(
                kind=FlagKind.OUT_OF_PLAUSIBLE_RANGE,
                field=field,
                index=index,
                detail=f"{value} outside [{plausible.low}, {plausible.high}]",
            )


def _scalar_range_flag(field: str, value: float, plausible: PlausibleRange) -> ValidationFlag | None:
    if plausible.contains(value):
        return None
    return ValidationFlag(
        kind=FlagKind.OUT_OF_PLAUSIBLE_RANGE,
        field=field,
        detail=f"{value} outside [{plausible.low}, {plausible.high}]",
    )


class FrameValidator:
    """Check raw frames against the schema invariants.

    Bit tables are built eagerly so that a broken table surfaces as a
    :class:`bmstelemetry.exceptions.BmsConfigError` at construction.
    """

    def __init__(
        self,
        config: EngineConfig,
        *,
        balancing_table: BitTable | None = None,
        fault_table: BitTable | None = None,
    ) -> None:
        self._config = config
        self.balancing_table = balancing_table or BitTable(config.balancing_bits, label="balancing_bits")
        self.fault_table = fault_table or BitTable(config.fault_bits, label="fault_bits")

    def validate(self, frame: RawFrame, *, last_timestamp: datetime | None = None) -> ValidationResult:
        """Run every check on *frame*.

        *last_timestamp* is the newest ``source_timestamp`` already accepted
        for the same unit; a frame that is not strictly newer is flagged
        ``StaleOrReordered`` but otherwise handled normally.
        """
        flags: list[ValidationFlag] = []
        flags.extend(self._check_cell_count(frame))
        flags.extend(self._check_temperatures(frame))
        flags.extend(self._check_ranges(frame))
        flags.extend(self._check_bitmasks(frame))
        if last_timestamp is not None and frame.source_timestamp <= last_timestamp:
            flags.append(
                ValidationFlag(
                    kind=FlagKind.STALE_OR_REORDERED,
                    field="source_timestamp",
                    detail=f"{frame.source_timestamp.isoformat()} <= {last_timestamp.isoformat()}",
                )
            )

        if flags:
            _logger.debug("Frame flagged: %s", ", ".join(str(flag) for flag in flags))
        return ValidationResult(frame=frame, flags=tuple(flags))

    def cross_check(
        self,
        frame: RawFrame,
        cell_voltage: Aggregate | NoData,
        bat_temp: Aggregate | NoData,
    ) -> list[ValidationFlag]:
        """Compare firmware-reported aggregates against derived ones.

        Reported values are never used for anything else.
        """
        reported = frame.reported
        pairs = (
            ("cell_voltage_max", reported.cell_voltage_max, cell_voltage, "max"),
            ("cell_voltage_min", reported.cell_voltage_min, cell_voltage, "min"),
            ("cell_voltage_avg", reported.cell_voltage_avg, cell_voltage, "mean"),
            ("bat_temp_max", reported.bat_temp_max, bat_temp, "max"),
            ("bat_temp_min", reported.bat_temp_min, bat_temp, "min"),
            ("bat_temp_avg", reported.bat_temp_avg, bat_temp, "mean"),
        )
        flags: list[ValidationFlag] = []
        for field, reported_value, derived, stat in pairs:
            if reported_value is None or not isinstance(derived, Aggregate):
                continue
            derived_value = getattr(derived, stat)
            # NaN differences fail the <= test and are reported too.
            if not abs(reported_value - derived_value) <= self._config.aggregate_tolerance:
                flags.append(
                    ValidationFlag(
                        kind=FlagKind.REPORTED_AGGREGATE_MISMATCH,
                        field=field,
                        detail=f"reported {reported_value}, derived {derived_value}",
                    )
                )
        return flags

    def _check_cell_count(self, frame: RawFrame) -> Iterator[ValidationFlag]:
        if len(frame.cell_voltages) != frame.connected_cells:
            yield ValidationFlag(
                kind=FlagKind.CELL_COUNT_MISMATCH,
                field="cell_voltages",
                detail=f"{len(frame.cell_voltages)} voltages for {frame.connected_cells} connected cells",
            )

    def _check_temperatures(self, frame: RawFrame) -> Iterator[ValidationFlag]:
        if not frame.bat_temps:
            yield ValidationFlag(kind=FlagKind.EMPTY_TEMPERATURE_ARRAY, field="bat_temps")

    def _check_ranges(self, frame: RawFrame) -> Iterator[ValidationFlag]:
        config = self._config
        yield from _range_flags("cell_voltages", frame.cell_voltages, config.cell_voltage_range)
        yield from _range_flags("bat_temps", frame.bat_temps, config.temperature_range)
        scalars = [
            ("pack_voltage", frame.pack_voltage, config.pack_voltage_range),
            ("stack_voltage", frame.stack_voltage, config.pack_voltage_range),
            ("pack_current", frame.pack_current, config.pack_current_range),
            ("soc_raw", frame.soc_raw, config.soc_range),
        ]
        scalars.extend((name, value, config.temperature_range) for name, value in frame.board_temps.items())
        for field, value, plausible in scalars:
            flag = _scalar_range_flag(field, value, plausible)
            if flag is not None:
                yield flag

    def _check_bitmasks(self, frame: RawFrame) -> Iterator[ValidationFlag]:
        # connected_cells is untrusted, so never build a mask that wide.
        beyond_cells = (frame.balancing_status >> frame.connected_cells) << frame.connected_cells
        if beyond_cells:
            yield ValidationFlag(
                kind=FlagKind.BALANCING_BIT_OUT_OF_RANGE,
                field="balancing_status",
                mask=beyond_cells,
                detail=f"bits set at or above connected_cells={frame.connected_cells}",
            )
        for field, mask, table in (
            ("balancing_status", frame.balancing_status, self.balancing_table),
            ("error_flags", frame.error_flags, self.fault_table),
        ):
            unknown = mask & ~table.known_mask
            if unknown:
                yield ValidationFlag(
                    kind=FlagKind.UNKNOWN_BITS,
                    field=field,
                    mask=unknown,
                    detail=f"bits not named in {table.label} (width {table.width})",
                )
