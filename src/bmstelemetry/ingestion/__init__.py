"""Ingestion layer.

Adapters that turn payloads received from the tracker (JSON over MQTT)
into frames and position fixes. Transport itself lives elsewhere.
"""

from bmstelemetry.ingestion.payload import (
    ingest_battery_payload,
    parse_battery_payload,
    parse_location_payload,
)

__all__ = ["ingest_battery_payload", "parse_battery_payload", "parse_location_payload"]
