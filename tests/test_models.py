"""Tests for the frame, location and reading models."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from pydantic import ValidationError

from bmstelemetry.models import BmsState, FlagKind, LocationReading, RawFrame, ValidationFlag, ValidationStatus
from bmstelemetry.models._base import parse_timestamp
from bmstelemetry.snapshot import SnapshotBuilder

# Payload shaped like the tracker firmware's battery-status message.
FIRMWARE_PAYLOAD: dict[str, Any] = {
    "state": 3,
    "chg_enable": True,
    "dis_enable": False,
    "connected_cells": 4,
    "cell_voltages": [3.7, 3.71, 3.69, 3.7, 0.0, 0.0],
    "cell_voltage_max": 3.71,
    "cell_voltage_min": 3.69,
    "cell_voltage_avg": 3.7,
    "pack_voltage": 14.8,
    "stack_voltage": 14.79,
    "pack_current": -2.5,
    "bat_temps": [24.5, 25.5],
    "bat_temp_max": 25.5,
    "bat_temp_min": 24.5,
    "bat_temp_avg": 25.0,
    "mosfet_temp": 30.0,
    "ic_temp": 31.0,
    "mcu_temp": 32.0,
    "full": False,
    "empty": False,
    "soc": 64.2,
    "balancing_status": 2,
    "no_idle_timestamp": "2026-01-01T11:59:00Z",
    "error_flags": 0,
    "timestamp": "2026-01-01T12:00:00Z",
}


class TestParseTimestamp:
    def test_rfc3339(self) -> None:
        assert parse_timestamp("2026-01-01T12:00:00Z") == datetime(2026, 1, 1, 12, tzinfo=UTC)

    def test_epoch_seconds_and_milliseconds(self) -> None:
        expected = datetime.fromtimestamp(1_770_928_447, tz=UTC)

        assert parse_timestamp(1_770_928_447) == expected
        assert parse_timestamp(1_770_928_447_000) == expected

    def test_naive_datetime_assumed_utc(self) -> None:
        assert parse_timestamp(datetime(2026, 1, 1)) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_none_passthrough(self) -> None:
        assert parse_timestamp(None) is None

    @pytest.mark.parametrize("value", [True, [1], "not a date"])
    def test_rejects_garbage(self, value: Any) -> None:
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestRawFrame:
    def test_firmware_payload_maps_to_fields(self) -> None:
        frame = RawFrame.model_validate(FIRMWARE_PAYLOAD)

        assert frame.state_code == 3
        assert frame.state == BmsState.NORMAL
        assert frame.chg_enable_raw is True
        assert frame.dis_enable_raw is False
        assert frame.soc_raw == 64.2
        assert frame.cell_voltages == (3.7, 3.71, 3.69, 3.7, 0.0, 0.0)
        assert frame.source_timestamp == datetime(2026, 1, 1, 12, tzinfo=UTC)
        assert frame.board_temps == {"mosfet_temp": 30.0, "ic_temp": 31.0, "mcu_temp": 32.0}
        assert frame.raw["soc"] == 64.2

    def test_firmware_aggregates_go_to_reported(self) -> None:
        frame = RawFrame.model_validate(FIRMWARE_PAYLOAD)

        assert frame.reported.cell_voltage_max == 3.71
        assert frame.reported.bat_temp_avg == 25.0
        assert frame.reported.full is False
        assert frame.reported.no_idle_timestamp == datetime(2026, 1, 1, 11, 59, tzinfo=UTC)
        assert "cell_voltage_max" not in RawFrame.model_fields

    def test_camel_case_keys(self) -> None:
        frame = RawFrame.model_validate(
            {
                "connectedCells": 2,
                "cellVoltages": [3.6, 3.62],
                "batTemps": [20.0],
                "packVoltage": 7.2,
                "stackVoltage": 7.2,
                "packCurrent": 0.0,
                "stateCode": 1,
                "chgEnableRaw": True,
                "disEnableRaw": True,
                "socRaw": 40.0,
                "balancingStatus": 1,
                "errorFlags": 4,
                "sourceTimestamp": 1_770_928_447,
            }
        )

        assert frame.connected_cells == 2
        assert frame.state == BmsState.CHARGING
        assert frame.balancing_status == 1
        assert frame.error_flags == 4

    def test_unknown_state_code_is_kept(self) -> None:
        frame = RawFrame.model_validate({**FIRMWARE_PAYLOAD, "state": 42})

        assert frame.state_code == 42
        assert frame.state == BmsState.UNKNOWN

    def test_missing_safety_field_is_rejected(self) -> None:
        payload = dict(FIRMWARE_PAYLOAD)
        del payload["pack_current"]

        with pytest.raises(ValidationError):
            RawFrame.model_validate(payload)

    def test_negative_bitmask_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RawFrame.model_validate({**FIRMWARE_PAYLOAD, "error_flags": -1})

    def test_frame_is_frozen(self) -> None:
        frame = RawFrame.model_validate(FIRMWARE_PAYLOAD)

        with pytest.raises(ValidationError):
            frame.soc_raw = 1.0  # type: ignore[misc]


class TestLocationReading:
    def test_quantized_decimal(self) -> None:
        fix = LocationReading.model_validate(
            {"lat": 45.815399123, "lon": 15.966568, "timestamp": "2026-01-01T12:00:00Z"}
        )

        assert fix.latitude == Decimal("45.8153991")
        assert fix.longitude == Decimal("15.9665680")
        assert fix.timestamp == datetime(2026, 1, 1, 12, tzinfo=UTC)

    def test_float_goes_through_str(self) -> None:
        fix = LocationReading(latitude=45.1, longitude=-0.1, timestamp=datetime(2026, 1, 1, tzinfo=UTC))

        assert fix.latitude == Decimal("45.1000000")
        assert fix.longitude == Decimal("-0.1000000")

    @pytest.mark.parametrize(("lat", "lon"), [(90.5, 0.0), (-91, 0.0), (0.0, 180.01), (0.0, -181), ("nan", 0.0)])
    def test_out_of_range_rejected(self, lat: Any, lon: Any) -> None:
        with pytest.raises(ValidationError):
            LocationReading(latitude=lat, longitude=lon, timestamp=datetime(2026, 1, 1, tzinfo=UTC))

    def test_bounds_are_inclusive(self) -> None:
        fix = LocationReading(latitude=-90, longitude=180, timestamp=datetime(2026, 1, 1, tzinfo=UTC))

        assert fix.latitude == Decimal(-90)


class TestValidationStatus:
    def test_clean(self) -> None:
        status = ValidationStatus()

        assert status.is_clean
        assert str(status) == "Clean"
        assert status.kinds == frozenset()

    def test_flagged_keeps_order(self) -> None:
        status = ValidationStatus(
            flags=(
                ValidationFlag(kind=FlagKind.STALE_OR_REORDERED, field="source_timestamp"),
                ValidationFlag(kind=FlagKind.UNKNOWN_BITS, field="error_flags", mask=0x10),
                ValidationFlag(kind=FlagKind.EMPTY_TEMPERATURE_ARRAY),
            )
        )

        assert not status.is_clean
        assert status.has(FlagKind.UNKNOWN_BITS)
        assert not status.has(FlagKind.NO_DATA)
        assert str(status) == (
            "Flagged{StaleOrReordered(source_timestamp), UnknownBits(error_flags=0x10), EmptyTemperatureArray}"
        )


class TestBatteryRecord:
    def test_to_record_layout(self) -> None:
        frame = RawFrame.model_validate(FIRMWARE_PAYLOAD)

        record = SnapshotBuilder().build("bike-1", frame).to_record()

        assert record["state"] == 3
        assert record["chg_enable"] is True
        assert record["cell_voltage_max"] == 3.71
        assert record["cell_voltage_min"] == 0.0
        assert record["bat_temp_avg"] == pytest.approx(25.0)
        assert record["is_full"] is False
        assert record["is_empty"] is False
        assert record["soc"] == 64.2
        assert record["no_idle_timestamp"] == datetime(2026, 1, 1, 12, tzinfo=UTC)
        assert record["cell_voltages"][0] == {"order": 1, "value": 3.7}
        assert len(record["cell_voltages"]) == 6
        assert record["bat_temps"] == [{"order": 1, "value": 24.5}, {"order": 2, "value": 25.5}]
        assert "CellCountMismatch(cell_voltages)" in record["validation"]
