"""Snapshot builder.

Composes validation, aggregation, bitmask decoding, activity tracking and
position correlation into one immutable :class:`BatteryReading` per frame.

Per-unit state lives in an explicit table keyed by unit id. Each entry has
its own lock, so frames for one unit are processed strictly one at a time
while different units never wait on each other.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from bmstelemetry.activity import ActivityTracker
from bmstelemetry.aggregate import Aggregate, NoData, aggregate
from bmstelemetry.codec import iter_set_bits
from bmstelemetry.config import EngineConfig
from bmstelemetry.correlate import nearest
from bmstelemetry.exceptions import BmsConfigError, BmsUnitHaltedError
from bmstelemetry.models.flags import FlagKind, ValidationFlag, ValidationStatus
from bmstelemetry.models.frame import RawFrame
from bmstelemetry.models.location import LocationReading
from bmstelemetry.models.reading import BatteryReading
from bmstelemetry.validation import FrameValidator

_logger = logging.getLogger(__name__)

ReadingSink = Callable[[BatteryReading], None]


@dataclass
class _UnitEntry:
    """Mutable per-unit state. Only touched while ``lock`` is held."""

    tracker: ActivityTracker
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_timestamp: datetime | None = None
    full: bool = False
    empty: bool = False
    halted: str | None = None
    retired: bool = False


class SnapshotBuilder:
    """Turn raw frames into finalized readings.

    Parameters
    ----------
    config : EngineConfig
        Validated on construction; bad settings raise
        :class:`BmsConfigError` before any frame is processed.
    sink : callable, optional
        Receives every reading, in processing order per unit, before
        :meth:`build` returns it.
    """

    def __init__(self, config: EngineConfig | None = None, *, sink: ReadingSink | None = None) -> None:
        self.config = (config or EngineConfig()).validate()
        self.validator = FrameValidator(self.config)
        self._sink = sink
        self._units: dict[str, _UnitEntry] = {}
        self._units_lock = threading.Lock()

    def _entry(self, unit_id: str) -> _UnitEntry:
        with self._units_lock:
            entry = self._units.get(unit_id)
            if entry is None:
                entry = _UnitEntry(
                    tracker=ActivityTracker(self.config.idle_current_threshold, self.config.idle_timeout)
                )
                self._units[unit_id] = entry
            return entry

    def units(self) -> list[str]:
        with self._units_lock:
            return list(self._units)

    def reset(self, unit_id: str) -> None:
        """Forget all state for *unit_id*, including a halt.

        Waits for a build already running for the unit to finish.
        """
        with self._units_lock:
            entry = self._units.get(unit_id)
        if entry is None:
            return
        with entry.lock:
            with self._units_lock:
                if self._units.get(unit_id) is entry:
                    del self._units[unit_id]
            entry.retired = True

    def build(
        self,
        unit_id: str,
        frame: RawFrame,
        locations: Iterable[LocationReading] = (),
    ) -> BatteryReading:
        """Build the reading for *frame* and hand it to the sink.

        Data problems are reported as flags on the reading. A
        :class:`BmsConfigError` raised while building halts the unit: it
        propagates, and later frames for the unit raise
        :class:`BmsUnitHaltedError` until :meth:`reset`. Tables and config
        are checked up front, so this only fires for a validator or bit
        table swapped in after construction.

        Unit state is committed only once the sink has accepted the
        reading. If the sink raises, the unit is left as it was and the
        same frame can be submitted again.
        """
        while True:
            entry = self._entry(unit_id)
            with entry.lock:
                if entry.retired:
                    continue
                if entry.halted is not None:
                    raise BmsUnitHaltedError(f"unit {unit_id} halted: {entry.halted}", unit_id=unit_id)
                saved = (copy.copy(entry.tracker), entry.last_timestamp, entry.full, entry.empty)
                try:
                    reading = self._build_locked(entry, unit_id, frame, locations)
                except BmsConfigError as exc:
                    entry.halted = str(exc)
                    _logger.warning("Halting unit %s after configuration error: %s", unit_id, exc)
                    raise
                if self._sink is not None:
                    try:
                        self._sink(reading)
                    except Exception:
                        entry.tracker, entry.last_timestamp, entry.full, entry.empty = saved
                        raise
                return reading

    def _build_locked(
        self,
        entry: _UnitEntry,
        unit_id: str,
        frame: RawFrame,
        locations: Iterable[LocationReading],
    ) -> BatteryReading:
        config = self.config
        result = self.validator.validate(frame, last_timestamp=entry.last_timestamp)
        flags: list[ValidationFlag] = list(result.flags)

        # Aggregation is best-effort; flagged frames still carry useful data.
        cell_voltage = aggregate(frame.cell_voltages)
        bat_temp = aggregate(frame.bat_temps)
        for name, stats in (("cell_voltages", cell_voltage), ("bat_temps", bat_temp)):
            if isinstance(stats, NoData):
                flags.append(ValidationFlag(kind=FlagKind.NO_DATA, field=name))
        flags.extend(self.validator.cross_check(frame, cell_voltage, bat_temp))

        limit = frame.connected_cells
        balancing = self.validator.balancing_table.decode(frame.balancing_status, limit=limit)
        balancing_cells = frozenset(index for index in iter_set_bits(frame.balancing_status) if index < limit)
        faults = self.validator.fault_table.decode(frame.error_flags)

        activity = entry.tracker.update(frame.source_timestamp, frame.pack_current)

        cell_min = cell_voltage.min if isinstance(cell_voltage, Aggregate) else None
        entry.full = self._full_latch(entry.full, frame.soc_raw, cell_min)
        entry.empty = not entry.full and self._empty_latch(entry.empty, frame.soc_raw, cell_min)

        location = nearest(frame.source_timestamp, locations, config.max_location_delta)

        if entry.last_timestamp is None or frame.source_timestamp > entry.last_timestamp:
            entry.last_timestamp = frame.source_timestamp

        reading = BatteryReading(
            unit_id=unit_id,
            frame=frame,
            cell_voltage=cell_voltage,
            bat_temp=bat_temp,
            is_full=entry.full,
            is_empty=entry.empty,
            activity=activity.state,
            no_idle_timestamp=activity.no_idle_timestamp,
            balancing_cells=balancing_cells,
            balancing=balancing.names,
            faults=faults.names,
            validation=ValidationStatus(flags=tuple(flags)),
            location=location,
        )
        if not reading.is_clean:
            _logger.debug("Unit %s reading %s", unit_id, reading.validation)
        return reading

    def _full_latch(self, was_full: bool, soc: float, cell_min: float | None) -> bool:
        config = self.config
        if was_full:
            return soc >= config.full_soc - config.soc_hysteresis
        return soc >= config.full_soc and cell_min is not None and cell_min >= config.full_cell_floor

    def _empty_latch(self, was_empty: bool, soc: float, cell_min: float | None) -> bool:
        config = self.config
        if was_empty:
            return soc <= config.empty_soc + config.soc_hysteresis
        return soc <= config.empty_soc and cell_min is not None and cell_min <= config.empty_cell_ceiling
