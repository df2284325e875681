"""Engine configuration for bmstelemetry."""

from __future__ import annotations

import dataclasses
import json
import math
import os
from datetime import timedelta
from typing import Any

from bmstelemetry._constants import DEFAULT_FAULT_BITS, default_balancing_bits
from bmstelemetry.exceptions import BmsConfigError


@dataclasses.dataclass(frozen=True)
class PlausibleRange:
    """Closed interval of physically plausible values for one quantity."""

    low: float
    high: float

    def __post_init__(self) -> None:
        if math.isnan(self.low) or math.isnan(self.high) or self.low > self.high:
            raise BmsConfigError(f"invalid plausible range [{self.low}, {self.high}]")

    def contains(self, value: float) -> bool:
        # NaN compares False on both sides and is therefore out of range.
        return self.low <= value <= self.high


def _env_float(env: Any, key: str) -> float | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise BmsConfigError(f"{key} must be numeric, got {value!r}") from exc


def _env_range(env: Any, key: str) -> PlausibleRange | None:
    value = env.get(key)
    if value is None:
        return None
    parts = value.split(",")
    if len(parts) != 2:
        raise BmsConfigError(f"{key} must be 'low,high', got {value!r}")
    try:
        return PlausibleRange(float(parts[0]), float(parts[1]))
    except ValueError as exc:
        raise BmsConfigError(f"{key} must be 'low,high', got {value!r}") from exc


def _env_bit_table(env: Any, key: str) -> dict[int, str] | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        decoded = json.loads(value)
        return {int(bit): str(name) for bit, name in decoded.items()}
    except (ValueError, AttributeError) as exc:
        raise BmsConfigError(f"{key} must be a JSON object of bit -> name, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class EngineConfig:
    """Validation and aggregation settings.

    Parameters
    ----------
    balancing_bits : dict[int, str]
        ``{bit_index: name}`` table for ``balancing_status``. Defaults to
        ``cell_1`` .. ``cell_32``.
    fault_bits : dict[int, str]
        ``{bit_index: name}`` table for ``error_flags``. Defaults to the
        Libre Solar BMS error flag layout.
    cell_voltage_range : PlausibleRange
        Plausible single-cell voltage (V). The upper bound is the cell ceiling.
    temperature_range : PlausibleRange
        Plausible temperature for any sensor (°C).
    pack_voltage_range : PlausibleRange
        Plausible pack and stack voltage (V).
    pack_current_range : PlausibleRange
        Plausible pack current (A), charging direction positive.
    soc_range : PlausibleRange
        Plausible state of charge (%).
    idle_current_threshold : float
        Current magnitude (A) above which a frame counts as activity.
    idle_timeout : timedelta
        Time after the last active frame before a unit is considered idle.
    full_soc, empty_soc : float
        SOC thresholds (%) for the full/empty latches.
    soc_hysteresis : float
        Margin (%) a latched full/empty state must be left by before it clears.
    full_cell_floor : float
        Minimum cell voltage (V) required to latch full.
    empty_cell_ceiling : float
        Minimum cell voltage (V) at or below which empty may latch.
    max_location_delta : timedelta
        Largest timestamp difference allowed when pairing a position fix.
    aggregate_tolerance : float
        Allowed absolute difference between firmware-reported and derived
        aggregates before ``ReportedAggregateMismatch`` is flagged.
    """

    balancing_bits: dict[int, str] = dataclasses.field(default_factory=default_balancing_bits)
    fault_bits: dict[int, str] = dataclasses.field(default_factory=lambda: dict(DEFAULT_FAULT_BITS))
    cell_voltage_range: PlausibleRange = PlausibleRange(0.0, 5.0)
    temperature_range: PlausibleRange = PlausibleRange(-40.0, 125.0)
    pack_voltage_range: PlausibleRange = PlausibleRange(0.0, 100.0)
    pack_current_range: PlausibleRange = PlausibleRange(-500.0, 500.0)
    soc_range: PlausibleRange = PlausibleRange(0.0, 100.0)
    idle_current_threshold: float = 0.1
    idle_timeout: timedelta = timedelta(minutes=30)
    full_soc: float = 98.0
    empty_soc: float = 2.0
    soc_hysteresis: float = 3.0
    full_cell_floor: float = 4.15
    empty_cell_ceiling: float = 3.2
    max_location_delta: timedelta = timedelta(seconds=30)
    aggregate_tolerance: float = 0.05

    def validate(self) -> EngineConfig:
        """Raise :class:`BmsConfigError` when settings contradict each other.

        Bit tables are checked when the codec tables are built.
        """
        if self.idle_current_threshold < 0:
            raise BmsConfigError("idle_current_threshold must be >= 0")
        if self.idle_timeout <= timedelta(0):
            raise BmsConfigError("idle_timeout must be positive")
        if self.soc_hysteresis < 0:
            raise BmsConfigError("soc_hysteresis must be >= 0")
        if self.empty_soc + self.soc_hysteresis >= self.full_soc - self.soc_hysteresis:
            raise BmsConfigError(
                f"empty band (<= {self.empty_soc + self.soc_hysteresis}) overlaps "
                f"full band (>= {self.full_soc - self.soc_hysteresis})"
            )
        if self.max_location_delta < timedelta(0):
            raise BmsConfigError("max_location_delta must be >= 0")
        if self.aggregate_tolerance < 0:
            raise BmsConfigError("aggregate_tolerance must be >= 0")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> EngineConfig:
        """Create configuration from ``BMS_*`` environment variables.

        Explicit keyword arguments override environment values. Durations
        are given in seconds, ranges as ``"low,high"`` and bit tables as a
        JSON object such as ``{"0": "Overvoltage"}``.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_FLOAT_MAP = {
            "BMS_IDLE_CURRENT_THRESHOLD": "idle_current_threshold",
            "BMS_FULL_SOC": "full_soc",
            "BMS_EMPTY_SOC": "empty_soc",
            "BMS_SOC_HYSTERESIS": "soc_hysteresis",
            "BMS_FULL_CELL_FLOOR": "full_cell_floor",
            "BMS_EMPTY_CELL_CEILING": "empty_cell_ceiling",
            "BMS_AGGREGATE_TOLERANCE": "aggregate_tolerance",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = _env_float(env, env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_SECONDS_MAP = {
            "BMS_IDLE_TIMEOUT": "idle_timeout",
            "BMS_MAX_LOCATION_DELTA": "max_location_delta",
        }
        for env_key, field_name in _ENV_SECONDS_MAP.items():
            seconds = _env_float(env, env_key)
            if seconds is not None:
                config_kwargs[field_name] = timedelta(seconds=seconds)

        _ENV_RANGE_MAP = {
            "BMS_CELL_VOLTAGE_RANGE": "cell_voltage_range",
            "BMS_TEMPERATURE_RANGE": "temperature_range",
            "BMS_PACK_VOLTAGE_RANGE": "pack_voltage_range",
            "BMS_PACK_CURRENT_RANGE": "pack_current_range",
            "BMS_SOC_RANGE": "soc_range",
        }
        for env_key, field_name in _ENV_RANGE_MAP.items():
            plausible = _env_range(env, env_key)
            if plausible is not None:
                config_kwargs[field_name] = plausible

        for env_key, field_name in (("BMS_BALANCING_BITS", "balancing_bits"), ("BMS_FAULT_BITS", "fault_bits")):
            table = _env_bit_table(env, env_key)
            if table is not None:
                config_kwargs[field_name] = table

        config_kwargs.update(overrides)

        return cls(**config_kwargs).validate()
