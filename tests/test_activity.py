from __future__ import annotations

from datetime import UTC, datetime, timedelta

from bmstelemetry.activity import ActivityTracker
from bmstelemetry.models.reading import ActivityState


def _dt(seconds: int = 0) -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC) + timedelta(seconds=seconds)


def _tracker() -> ActivityTracker:
    return ActivityTracker(idle_current_threshold=0.5, idle_timeout=timedelta(seconds=60))


def test_starts_idle_without_timestamp() -> None:
    update = _tracker().update(_dt(), 0.0)

    assert update.state == ActivityState.IDLE
    assert update.no_idle_timestamp is None


def test_current_above_threshold_is_active() -> None:
    tracker = _tracker()

    update = tracker.update(_dt(5), 2.0)

    assert update.state == ActivityState.ACTIVE
    assert update.no_idle_timestamp == _dt(5)
    assert tracker.last_active == _dt(5)


def test_discharge_current_counts_as_activity() -> None:
    assert _tracker().update(_dt(), -3.0).state == ActivityState.ACTIVE


def test_current_at_threshold_is_not_activity() -> None:
    assert _tracker().update(_dt(), 0.5).state == ActivityState.IDLE


def test_goes_idle_only_after_timeout() -> None:
    tracker = _tracker()
    tracker.update(_dt(0), 2.0)

    within = tracker.update(_dt(59), 0.0)
    after = tracker.update(_dt(60), 0.0)

    assert within.state == ActivityState.ACTIVE
    assert after.state == ActivityState.IDLE
    assert after.no_idle_timestamp == _dt(0)
    assert tracker.state == ActivityState.IDLE


def test_no_idle_timestamp_never_moves_backwards() -> None:
    tracker = _tracker()
    sequence = [(10, 2.0), (20, 0.0), (15, 3.0), (30, 1.0), (25, 0.0), (5, 4.0), (40, 0.0)]

    seen: list[datetime] = []
    for seconds, current in sequence:
        update = tracker.update(_dt(seconds), current)
        assert update.no_idle_timestamp is not None
        seen.append(update.no_idle_timestamp)

    assert seen == sorted(seen)
    assert seen[-1] == _dt(30)


def test_zero_current_frame_keeps_last_active_timestamp() -> None:
    tracker = _tracker()
    tracker.update(_dt(10), 2.0)

    assert tracker.update(_dt(11), 0.0).no_idle_timestamp == _dt(10)
