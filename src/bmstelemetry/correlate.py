"""Nearest-in-time pairing of readings with position fixes."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from bmstelemetry.models.location import LocationReading


def nearest(
    reading_timestamp: datetime,
    candidates: Iterable[LocationReading],
    max_delta: timedelta,
) -> LocationReading | None:
    """Return the fix closest in time to *reading_timestamp*.

    Fixes further away than *max_delta* never match. On a tie the earlier
    fix wins, then the one listed first.
    """
    best: LocationReading | None = None
    best_delta: timedelta | None = None
    for candidate in candidates:
        delta = abs(candidate.timestamp - reading_timestamp)
        if delta > max_delta:
            continue
        if (
            best is None
            or best_delta is None
            or delta < best_delta
            or (delta == best_delta and candidate.timestamp < best.timestamp)
        ):
            best = candidate
            best_delta = delta
    return best
