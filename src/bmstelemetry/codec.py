"""Bitmask codec for balancing and fault registers.

Bit-to-name tables are configuration. The codec only knows how to walk
set bits; the taxonomy lives in :class:`bmstelemetry.config.EngineConfig`.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field

from bmstelemetry.exceptions import BmsConfigError


def iter_set_bits(mask: int) -> Iterator[int]:
    """Yield the indices of set bits in *mask*, lowest first."""
    index = 0
    while mask:
        if mask & 1:
            yield index
        mask >>= 1
        index += 1


class DecodedMask(BaseModel):
    """Names of the set bits plus any set bits the table cannot name."""

    model_config = ConfigDict(frozen=True)

    names: frozenset[str] = Field(default_factory=frozenset)
    unknown_bits: int = 0

    @property
    def has_unknown(self) -> bool:
        return self.unknown_bits != 0


class BitTable:
    """Immutable ``{bit_index: name}`` table.

    Raises :class:`BmsConfigError` for an empty table, negative indices,
    or two bits sharing a name.
    """

    def __init__(self, bits: Mapping[int, str], *, label: str = "bit table") -> None:
        if not bits:
            raise BmsConfigError(f"{label} must define at least one bit")
        by_index: dict[int, str] = {}
        by_name: dict[str, int] = {}
        for index, name in bits.items():
            if not isinstance(index, int) or index < 0:
                raise BmsConfigError(f"{label}: bit index must be a non-negative int, got {index!r}")
            if not name:
                raise BmsConfigError(f"{label}: bit {index} has an empty name")
            if name in by_name:
                raise BmsConfigError(f"{label}: name {name!r} used for bits {by_name[name]} and {index}")
            by_index[index] = name
            by_name[name] = index

        self.label = label
        self._names = by_index
        self._indices = by_name
        self._known_mask = sum(1 << index for index in by_index)
        self.width = max(by_index) + 1

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"BitTable({self.label!r}, width={self.width}, bits={len(self)})"

    @property
    def known_mask(self) -> int:
        return self._known_mask

    def name(self, index: int) -> str | None:
        return self._names.get(index)

    def index(self, name: str) -> int | None:
        return self._indices.get(name)

    def decode(self, mask: int, *, limit: int | None = None) -> DecodedMask:
        """Decode *mask* into bit names.

        Set bits without a name in the table (past ``width`` or in a gap)
        are returned in ``unknown_bits`` instead of being dropped. When
        *limit* is given, bits at or above it are ignored entirely.
        """
        if mask < 0:
            raise ValueError(f"mask must be unsigned, got {mask}")
        if limit is not None:
            limit = max(limit, 0)
            # Shift rather than build a limit-wide mask; limit comes from the frame.
            mask ^= (mask >> limit) << limit
        names = frozenset(self._names[index] for index in iter_set_bits(mask & self._known_mask))
        return DecodedMask(names=names, unknown_bits=mask & ~self._known_mask)

    def encode(self, names: Iterable[str]) -> int:
        """Inverse of :meth:`decode` for names known to the table."""
        mask = 0
        for name in names:
            index = self._indices.get(name)
            if index is None:
                raise ValueError(f"{self.label}: unknown bit name {name!r}")
            mask |= 1 << index
        return mask
