"""Base model and enum for BMS telemetry payloads.

Every wire-facing model inherits from :class:`TelemetryBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase keys map to snake_case
  fields, while snake_case keys (as sent by the tracker firmware) still
  populate by name.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used.
* A ``raw`` dict that captures the original payload.

Firmware enums inherit from :class:`BmsEnum` which adds an ``UNKNOWN``
member at ``-1`` and a ``_missing_`` hook that returns ``UNKNOWN``
for any value without a mapped member.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an RFC3339 string or epoch (seconds **or** milliseconds) to a UTC datetime.

    Naive datetimes are assumed to be UTC; the firmware formats every
    timestamp with a ``Z`` suffix.
    """
    if value is None:
        return value
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    try:
        ts = float(value)
    except TypeError as exc:
        raise ValueError(f"unsupported timestamp {value!r}") from exc
    if ts >= _MS_THRESHOLD:
        ts /= 1000.0
    try:
        return datetime.fromtimestamp(ts, tz=UTC)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"timestamp out of range: {value!r}") from exc


UtcTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces RFC3339 strings and epoch numbers to UTC datetimes."""


class BmsEnum(enum.IntEnum):
    """Base for firmware enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> BmsEnum:
        unknown: BmsEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class TelemetryBaseModel(BaseModel):
    """Base for wire-facing telemetry models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Drop ``None`` values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if value is not None}
        # Keep an explicit raw= from keyword construction.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
