"""Raw BMS telemetry frame model.

Field layout follows the ``BmsStatus`` struct published by the tracker
firmware on ``/bicycle/battery-status``.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, model_validator

from bmstelemetry.models._base import BmsEnum, TelemetryBaseModel, UtcTimestamp

# Aggregate/derived keys the firmware mirrors into its payload. They are
# moved into ``RawFrame.reported`` and never trusted.
_REPORTED_KEYS: dict[str, str] = {
    "cell_voltage_max": "cell_voltage_max",
    "cellVoltageMax": "cell_voltage_max",
    "cell_voltage_min": "cell_voltage_min",
    "cellVoltageMin": "cell_voltage_min",
    "cell_voltage_avg": "cell_voltage_avg",
    "cellVoltageAvg": "cell_voltage_avg",
    "bat_temp_max": "bat_temp_max",
    "batTempMax": "bat_temp_max",
    "bat_temp_min": "bat_temp_min",
    "batTempMin": "bat_temp_min",
    "bat_temp_avg": "bat_temp_avg",
    "batTempAvg": "bat_temp_avg",
    "full": "full",
    "is_full": "full",
    "isFull": "full",
    "empty": "empty",
    "is_empty": "empty",
    "isEmpty": "empty",
    "no_idle_timestamp": "no_idle_timestamp",
    "noIdleTimestamp": "no_idle_timestamp",
}


class BmsState(BmsEnum):
    """Libre Solar BMS state machine state (``BmsState``).

    The frame keeps the integer as sent; this enum is a convenience view.
    """

    UNKNOWN = -1
    OFF = 0
    CHARGING = 1
    DISCHARGING = 2
    NORMAL = 3
    SHUTDOWN = 4


class FirmwareReported(TelemetryBaseModel):
    """Values the firmware computed itself.

    Kept apart from derived fields; only used to cross-check the engine's
    own aggregation.
    """

    cell_voltage_max: float | None = None
    cell_voltage_min: float | None = None
    cell_voltage_avg: float | None = None
    bat_temp_max: float | None = None
    bat_temp_min: float | None = None
    bat_temp_avg: float | None = None
    full: bool | None = None
    empty: bool | None = None
    no_idle_timestamp: UtcTimestamp | None = None


class RawFrame(TelemetryBaseModel):
    """One untrusted telemetry sample from the battery controller.

    Parameters
    ----------
    connected_cells : int
        Number of cells the controller reports as connected.
    cell_voltages : tuple of float
        Single cell voltages (V). Should hold ``connected_cells`` entries.
    bat_temps : tuple of float
        Pack thermistor temperatures (°C); count independent of cells.
    pack_voltage, stack_voltage : float
        External pack and internal stack voltage (V).
    pack_current : float
        Pack current (A), charging direction positive.
    state_code : int
        Opaque firmware state id (see :class:`BmsState`).
    chg_enable_raw, dis_enable_raw : bool
        Firmware charge/discharge enable switches.
    soc_raw : float
        Firmware state of charge (%).
    balancing_status : int
        Balancing switch bitmask, bit ``n`` = cell ``n``.
    error_flags : int
        Fault bitmask.
    source_timestamp : datetime
        Sample time reported by the controller.
    mosfet_temp, ic_temp, mcu_temp : float or None
        Board temperatures (°C), if reported.
    reported : FirmwareReported
        Firmware-computed aggregates carried along for cross-checking.
    """

    connected_cells: int = Field(ge=0)
    cell_voltages: tuple[float, ...] = ()
    bat_temps: tuple[float, ...] = ()
    pack_voltage: float
    stack_voltage: float
    pack_current: float
    state_code: int = Field(validation_alias=AliasChoices("state_code", "stateCode", "state"))
    chg_enable_raw: bool = Field(
        validation_alias=AliasChoices("chg_enable_raw", "chgEnableRaw", "chg_enable", "chgEnable")
    )
    dis_enable_raw: bool = Field(
        validation_alias=AliasChoices("dis_enable_raw", "disEnableRaw", "dis_enable", "disEnable")
    )
    soc_raw: float = Field(validation_alias=AliasChoices("soc_raw", "socRaw", "soc"))
    balancing_status: int = Field(default=0, ge=0)
    error_flags: int = Field(default=0, ge=0)
    source_timestamp: UtcTimestamp = Field(
        validation_alias=AliasChoices("source_timestamp", "sourceTimestamp", "timestamp", "time")
    )
    mosfet_temp: float | None = None
    ic_temp: float | None = None
    mcu_temp: float | None = None
    reported: FirmwareReported = Field(default_factory=FirmwareReported)

    @model_validator(mode="before")
    @classmethod
    def _split_reported(cls, values: Any) -> Any:
        """Move firmware aggregate copies into the ``reported`` sub-model."""
        if not isinstance(values, dict) or "reported" in values:
            return values
        working = dict(values)
        reported: dict[str, Any] = {}
        for key, target in _REPORTED_KEYS.items():
            if key in working:
                value = working.pop(key)
                if value is not None:
                    reported[target] = value
        if reported:
            working["reported"] = reported
        return working

    @property
    def state(self) -> BmsState:
        return BmsState(self.state_code)

    @property
    def board_temps(self) -> dict[str, float]:
        """Board temperatures that were actually reported."""
        temps = {"mosfet_temp": self.mosfet_temp, "ic_temp": self.ic_temp, "mcu_temp": self.mcu_temp}
        return {name: value for name, value in temps.items() if value is not None}
