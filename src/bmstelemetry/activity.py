"""Idle/active state machine for one battery unit.

The tracker has no clock of its own; it only ever sees frame timestamps.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from bmstelemetry.models.reading import ActivityState

_logger = logging.getLogger(__name__)


class ActivityUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: ActivityState
    no_idle_timestamp: datetime | None


class ActivityTracker:
    """Track the last time a unit's current exceeded the idle threshold.

    A frame is active when ``|pack_current| > idle_current_threshold``.
    Otherwise the unit stays active until ``idle_timeout`` has passed since
    the last active frame. ``no_idle_timestamp`` only ever moves forward.
    """

    def __init__(self, idle_current_threshold: float, idle_timeout: timedelta) -> None:
        self.idle_current_threshold = idle_current_threshold
        self.idle_timeout = idle_timeout
        self._last_active: datetime | None = None
        self._state = ActivityState.IDLE

    @property
    def last_active(self) -> datetime | None:
        return self._last_active

    @property
    def state(self) -> ActivityState:
        return self._state

    def update(self, timestamp: datetime, pack_current: float) -> ActivityUpdate:
        if abs(pack_current) > self.idle_current_threshold:
            if self._last_active is None or timestamp > self._last_active:
                self._last_active = timestamp
            state = ActivityState.ACTIVE
        elif self._last_active is not None and timestamp - self._last_active < self.idle_timeout:
            state = ActivityState.ACTIVE
        else:
            state = ActivityState.IDLE

        if state != self._state:
            _logger.debug("Activity %s -> %s at %s", self._state, state, timestamp.isoformat())
            self._state = state
        return ActivityUpdate(state=state, no_idle_timestamp=self._last_active)
