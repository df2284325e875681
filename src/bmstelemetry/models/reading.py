"""Finalized battery reading model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bmstelemetry.aggregate import Aggregate, NoData
from bmstelemetry.models.flags import ValidationStatus
from bmstelemetry.models.frame import RawFrame
from bmstelemetry.models.location import LocationReading


class ActivityState(StrEnum):
    ACTIVE = "active"
    IDLE = "idle"


def _stat(value: Aggregate | NoData, name: str) -> float | None:
    if isinstance(value, Aggregate):
        return float(getattr(value, name))
    return None


class BatteryReading(BaseModel):
    """One validated, derived snapshot of a battery unit.

    Derived fields are computed by the engine from ``frame`` and never
    copied from ``frame.reported``. Instances are immutable once built.
    """

    model_config = ConfigDict(frozen=True)

    unit_id: str
    frame: RawFrame
    cell_voltage: Aggregate | NoData
    bat_temp: Aggregate | NoData
    is_full: bool = False
    is_empty: bool = False
    activity: ActivityState = ActivityState.IDLE
    no_idle_timestamp: datetime | None = None
    balancing_cells: frozenset[int] = Field(default_factory=frozenset)
    """Indices of cells whose balancing switch is on."""
    balancing: frozenset[str] = Field(default_factory=frozenset)
    """Table names of the balancing bits that are set."""
    faults: frozenset[str] = Field(default_factory=frozenset)
    validation: ValidationStatus = Field(default_factory=ValidationStatus)
    location: LocationReading | None = None

    @model_validator(mode="after")
    def _full_empty_exclusive(self) -> BatteryReading:
        if self.is_full and self.is_empty:
            raise ValueError("a reading cannot be both full and empty")
        return self

    @property
    def timestamp(self) -> datetime:
        return self.frame.source_timestamp

    @property
    def is_clean(self) -> bool:
        return self.validation.is_clean

    @property
    def cell_voltage_max(self) -> float | None:
        return _stat(self.cell_voltage, "max")

    @property
    def cell_voltage_min(self) -> float | None:
        return _stat(self.cell_voltage, "min")

    @property
    def cell_voltage_avg(self) -> float | None:
        return _stat(self.cell_voltage, "mean")

    @property
    def bat_temp_max(self) -> float | None:
        return _stat(self.bat_temp, "max")

    @property
    def bat_temp_min(self) -> float | None:
        return _stat(self.bat_temp, "min")

    @property
    def bat_temp_avg(self) -> float | None:
        return _stat(self.bat_temp, "mean")

    def to_record(self) -> dict[str, Any]:
        """Flatten into the ``batteries`` table layout.

        Cell voltages and temperatures become ordered child rows with a
        1-based ``order``, matching the ``*_order`` columns of the store.
        """
        frame = self.frame
        return {
            "unit_id": self.unit_id,
            "state": frame.state_code,
            "chg_enable": frame.chg_enable_raw,
            "dis_enable": frame.dis_enable_raw,
            "connected_cells": frame.connected_cells,
            "cell_voltage_max": self.cell_voltage_max,
            "cell_voltage_min": self.cell_voltage_min,
            "cell_voltage_avg": self.cell_voltage_avg,
            "pack_voltage": frame.pack_voltage,
            "stack_voltage": frame.stack_voltage,
            "pack_current": frame.pack_current,
            "bat_temp_max": self.bat_temp_max,
            "bat_temp_min": self.bat_temp_min,
            "bat_temp_avg": self.bat_temp_avg,
            "mosfet_temp": frame.mosfet_temp,
            "ic_temp": frame.ic_temp,
            "mcu_temp": frame.mcu_temp,
            "is_full": self.is_full,
            "is_empty": self.is_empty,
            "soc": frame.soc_raw,
            "balancing_status": frame.balancing_status,
            "no_idle_timestamp": self.no_idle_timestamp,
            "error_flags": frame.error_flags,
            "timestamp": frame.source_timestamp,
            "faults": sorted(self.faults),
            "validation": [str(flag) for flag in self.validation.flags],
            "cell_voltages": [{"order": order, "value": value} for order, value in enumerate(frame.cell_voltages, 1)],
            "bat_temps": [{"order": order, "value": value} for order, value in enumerate(frame.bat_temps, 1)],
        }
