"""bmstelemetry - Validation and aggregation engine for BMS telemetry frames."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bmstelemetry")
except PackageNotFoundError:
    __version__ = "0+local"
from bmstelemetry.activity import ActivityTracker, ActivityUpdate
from bmstelemetry.aggregate import NO_DATA, Aggregate, NoData, aggregate
from bmstelemetry.codec import BitTable, DecodedMask
from bmstelemetry.config import EngineConfig, PlausibleRange
from bmstelemetry.correlate import nearest
from bmstelemetry.exceptions import BmsConfigError, BmsError, BmsPayloadError, BmsUnitHaltedError
from bmstelemetry.ingestion import ingest_battery_payload, parse_battery_payload, parse_location_payload
from bmstelemetry.models import (
    ActivityState,
    BatteryReading,
    BmsState,
    FirmwareReported,
    FlagKind,
    LocationReading,
    RawFrame,
    ValidationFlag,
    ValidationStatus,
)
from bmstelemetry.snapshot import SnapshotBuilder
from bmstelemetry.validation import FrameValidator, ValidationResult

__all__ = [
    "__version__",
    "NO_DATA",
    "ActivityState",
    "ActivityTracker",
    "ActivityUpdate",
    "Aggregate",
    "BatteryReading",
    "BitTable",
    "BmsConfigError",
    "BmsError",
    "BmsPayloadError",
    "BmsState",
    "BmsUnitHaltedError",
    "DecodedMask",
    "EngineConfig",
    "FirmwareReported",
    "FlagKind",
    "FrameValidator",
    "LocationReading",
    "NoData",
    "PlausibleRange",
    "RawFrame",
    "SnapshotBuilder",
    "ValidationFlag",
    "ValidationResult",
    "ValidationStatus",
    "aggregate",
    "ingest_battery_payload",
    "nearest",
    "parse_battery_payload",
    "parse_location_payload",
]
