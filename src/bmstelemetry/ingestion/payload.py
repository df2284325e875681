"""JSON payload parsing for the tracker's MQTT topics.

The tracker publishes one JSON object per message on
``/bicycle/battery-status`` and ``/bicycle/gps-coordinates``. Parsing
failures raise :class:`BmsPayloadError`; a frame that parses but carries
bad values is passed on and flagged by the validator instead.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from bmstelemetry._constants import TOPIC_BATTERY, TOPIC_GPS
from bmstelemetry._logsafe import truncate_for_log
from bmstelemetry.exceptions import BmsPayloadError
from bmstelemetry.models.frame import RawFrame
from bmstelemetry.models.location import LocationReading
from bmstelemetry.models.reading import BatteryReading
from bmstelemetry.snapshot import SnapshotBuilder

_logger = logging.getLogger(__name__)

Payload = bytes | bytearray | str | Mapping[str, Any]


def _decode_json(payload: Payload, topic: str) -> dict[str, Any]:
    if isinstance(payload, Mapping):
        return dict(payload)
    try:
        decoded = json.loads(payload)
    except (TypeError, ValueError) as exc:
        _logger.debug("Undecodable payload on %s: %s", topic, truncate_for_log(payload))
        raise BmsPayloadError(f"payload on {topic} is not valid JSON: {exc}", topic=topic) from exc
    if not isinstance(decoded, dict):
        raise BmsPayloadError(f"payload on {topic} must be a JSON object, got {type(decoded).__name__}", topic=topic)
    return decoded


def parse_battery_payload(payload: Payload) -> RawFrame:
    """Parse a ``battery-status`` message into a :class:`RawFrame`."""
    data = _decode_json(payload, TOPIC_BATTERY)
    try:
        return RawFrame.model_validate(data)
    except ValidationError as exc:
        _logger.debug("Invalid battery payload: %s", truncate_for_log(data))
        raise BmsPayloadError(f"invalid battery payload: {exc.error_count()} error(s)", topic=TOPIC_BATTERY) from exc


def parse_location_payload(payload: Payload) -> LocationReading:
    """Parse a ``gps-coordinates`` message into a :class:`LocationReading`."""
    data = _decode_json(payload, TOPIC_GPS)
    try:
        return LocationReading.model_validate(data)
    except ValidationError as exc:
        _logger.debug("Invalid location payload: %s", truncate_for_log(data))
        raise BmsPayloadError(f"invalid location payload: {exc.error_count()} error(s)", topic=TOPIC_GPS) from exc


def ingest_battery_payload(
    builder: SnapshotBuilder,
    unit_id: str,
    payload: Payload,
    locations: Iterable[LocationReading] = (),
) -> BatteryReading:
    """Parse a battery payload and build its reading in one step."""
    frame = parse_battery_payload(payload)
    return builder.build(unit_id, frame, locations)
