"""Position fix model.

Mapped from the ``/bicycle/gps-coordinates`` payload.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from bmstelemetry._constants import COORDINATE_PLACES
from bmstelemetry.models._base import UtcTimestamp

_QUANTUM = Decimal(1).scaleb(-COORDINATE_PLACES)


class LocationReading(BaseModel):
    """GPS position fix.

    Parameters
    ----------
    latitude : Decimal
        Latitude in degrees, ``[-90, 90]``.
    longitude : Decimal
        Longitude in degrees, ``[-180, 180]``.
    timestamp : datetime
        Fix time (UTC).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: Decimal = Field(ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: Decimal = Field(ge=-180, le=180, validation_alias=AliasChoices("longitude", "lon", "lng"))
    timestamp: UtcTimestamp = Field(validation_alias=AliasChoices("timestamp", "time", "gpsTimestamp"))

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _quantize(cls, value: Any) -> Decimal:
        # Floats go through str() so 45.1 does not become 45.09999...
        if isinstance(value, bool):
            raise ValueError("boolean is not a coordinate")
        try:
            number = value if isinstance(value, Decimal) else Decimal(str(value))
            if not number.is_finite():
                raise ValueError(f"coordinate must be finite, got {value!r}")
            return number.quantize(_QUANTUM)
        except InvalidOperation as exc:
            raise ValueError(f"invalid coordinate {value!r}") from exc
