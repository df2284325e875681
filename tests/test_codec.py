from __future__ import annotations

import itertools

import pytest

from bmstelemetry._constants import DEFAULT_FAULT_BITS
from bmstelemetry.codec import BitTable, iter_set_bits
from bmstelemetry.exceptions import BmsConfigError

FAULTS = BitTable({0: "Overvoltage", 2: "Overtemp"}, label="fault_bits")


def test_iter_set_bits() -> None:
    assert list(iter_set_bits(0)) == []
    assert list(iter_set_bits(0b1011)) == [0, 1, 3]
    assert list(iter_set_bits(1 << 40)) == [40]


class TestBitTable:
    def test_width_is_highest_index_plus_one(self) -> None:
        assert FAULTS.width == 3
        assert len(FAULTS) == 2
        assert FAULTS.known_mask == 0b101

    def test_lookup(self) -> None:
        assert FAULTS.name(2) == "Overtemp"
        assert FAULTS.name(1) is None
        assert FAULTS.index("Overvoltage") == 0
        assert FAULTS.index("Nope") is None

    def test_zero_width_table_is_fatal(self) -> None:
        with pytest.raises(BmsConfigError):
            BitTable({})

    def test_negative_index_is_fatal(self) -> None:
        with pytest.raises(BmsConfigError):
            BitTable({-1: "x"})

    def test_duplicate_names_are_fatal(self) -> None:
        with pytest.raises(BmsConfigError):
            BitTable({0: "x", 1: "x"})

    def test_empty_name_is_fatal(self) -> None:
        with pytest.raises(BmsConfigError):
            BitTable({0: ""})


class TestDecode:
    def test_example_fault_mask(self) -> None:
        decoded = FAULTS.decode(0b101)

        assert decoded.names == frozenset({"Overvoltage", "Overtemp"})
        assert decoded.unknown_bits == 0
        assert not decoded.has_unknown

    def test_example_balancing_mask(self) -> None:
        table = BitTable({0: "cellA", 1: "cellB"})

        assert table.decode(0b0010).names == frozenset({"cellB"})

    def test_bit_beyond_width_is_reported_not_dropped(self) -> None:
        decoded = FAULTS.decode(0b1001)

        assert decoded.names == frozenset({"Overvoltage"})
        assert decoded.unknown_bits == 0b1000
        assert decoded.has_unknown

    def test_unnamed_bit_inside_width_is_unknown(self) -> None:
        decoded = FAULTS.decode(0b010)

        assert decoded.names == frozenset()
        assert decoded.unknown_bits == 0b010

    def test_limit_ignores_high_bits(self) -> None:
        table = BitTable({0: "cellA", 1: "cellB", 2: "cellC"})

        decoded = table.decode(0b111, limit=2)

        assert decoded.names == frozenset({"cellA", "cellB"})
        assert decoded.unknown_bits == 0

    def test_limit_zero_decodes_nothing(self) -> None:
        assert FAULTS.decode(0b101, limit=0).names == frozenset()

    def test_huge_limit_is_cheap(self) -> None:
        table = BitTable({0: "cellA", 1: "cellB"})

        decoded = table.decode(0b101, limit=10**12)

        assert decoded.names == frozenset({"cellA"})
        assert decoded.unknown_bits == 0b100

    def test_negative_mask_rejected(self) -> None:
        with pytest.raises(ValueError):
            FAULTS.decode(-1)


class TestEncode:
    def test_encode(self) -> None:
        assert FAULTS.encode({"Overvoltage", "Overtemp"}) == 0b101
        assert FAULTS.encode([]) == 0

    def test_unknown_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            FAULTS.encode({"Undervoltage"})

    def test_decode_inverts_encode_for_every_subset(self) -> None:
        table = BitTable(DEFAULT_FAULT_BITS)
        names = sorted(DEFAULT_FAULT_BITS.values())
        for size in range(4):
            for subset in itertools.combinations(names, size):
                assert table.decode(table.encode(subset)).names == frozenset(subset)
