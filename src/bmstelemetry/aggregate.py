"""Max/min/mean over a sequence of sensor samples."""

from __future__ import annotations

import math
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict


class Aggregate(BaseModel):
    """Statistics of a non-empty sample sequence."""

    model_config = ConfigDict(frozen=True)

    max: float
    min: float
    mean: float
    count: int


class NoData(BaseModel):
    """Result for an empty sample sequence; there is no max/min/mean."""

    model_config = ConfigDict(frozen=True)

    def __bool__(self) -> bool:
        return False


NO_DATA = NoData()


def aggregate(samples: Iterable[float]) -> Aggregate | NoData:
    """Return max, min and mean of *samples*, or :data:`NO_DATA` when empty.

    Non-finite samples are skipped; the validator flags them separately.
    The sum uses :func:`math.fsum`, so the mean does not drift for long
    cell arrays. The mean is clamped into ``[min, max]`` so that the final
    division can never push it outside the observed extremes.
    """
    values = [value for value in map(float, samples) if math.isfinite(value)]
    if not values:
        return NO_DATA

    highest = max(values)
    lowest = min(values)
    count = len(values)
    mean = math.fsum(value / count for value in values)
    return Aggregate(max=highest, min=lowest, mean=min(max(mean, lowest), highest), count=count)
