"""Data models for BMS telemetry frames and readings."""

from bmstelemetry.models._base import BmsEnum, TelemetryBaseModel, UtcTimestamp, parse_timestamp
from bmstelemetry.models.flags import CLEAN, FlagKind, ValidationFlag, ValidationStatus
from bmstelemetry.models.frame import BmsState, FirmwareReported, RawFrame
from bmstelemetry.models.location import LocationReading
from bmstelemetry.models.reading import ActivityState, BatteryReading

__all__ = [
    "CLEAN",
    "ActivityState",
    "BatteryReading",
    "BmsEnum",
    "BmsState",
    "FirmwareReported",
    "FlagKind",
    "LocationReading",
    "RawFrame",
    "TelemetryBaseModel",
    "UtcTimestamp",
    "ValidationFlag",
    "ValidationStatus",
    "parse_timestamp",
]
