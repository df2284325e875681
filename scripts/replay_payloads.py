#!/usr/bin/env python3
"""Replay captured tracker payloads through the engine.

Reads a JSON-lines capture where every line is ``{"topic": ..., "payload": ...}``
as recorded from the MQTT broker, and prints one summary line per battery
reading. GPS fixes seen so far are used for correlation.

Usage
-----
::

    python scripts/replay_payloads.py capture.jsonl --unit bike-1

Options::

    --unit ID            Unit id to file readings under (default: "unit")
    --flagged-only       Only print readings that carry flags
    --verbose / -v       Enable debug logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import deque
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from bmstelemetry import BmsPayloadError, EngineConfig, SnapshotBuilder  # noqa: E402
from bmstelemetry._constants import TOPIC_BATTERY, TOPIC_GPS  # noqa: E402
from bmstelemetry.ingestion import ingest_battery_payload, parse_location_payload  # noqa: E402
from bmstelemetry.models import LocationReading  # noqa: E402

# Fixes kept for correlation; the tracker publishes one per battery frame.
_FIX_WINDOW = 32


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay captured BMS payloads")
    parser.add_argument("capture", type=Path)
    parser.add_argument("--unit", default="unit")
    parser.add_argument("--flagged-only", action="store_true")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    builder = SnapshotBuilder(EngineConfig.from_env())
    fixes: deque[LocationReading] = deque(maxlen=_FIX_WINDOW)
    readings = flagged = rejected = 0

    with args.capture.open(encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, 1):
            if not line.strip():
                continue
            record = json.loads(line)
            topic = record.get("topic")
            try:
                if topic == TOPIC_GPS:
                    fixes.append(parse_location_payload(record["payload"]))
                    continue
                if topic != TOPIC_BATTERY:
                    continue
                reading = ingest_battery_payload(builder, args.unit, record["payload"], fixes)
            except BmsPayloadError as exc:
                rejected += 1
                print(f"line {line_no}: rejected: {exc}")
                continue

            readings += 1
            if not reading.is_clean:
                flagged += 1
            elif args.flagged_only:
                continue
            print(
                f"{reading.timestamp.isoformat()} soc={reading.frame.soc_raw:.1f} "
                f"cell=[{reading.cell_voltage_min}, {reading.cell_voltage_max}] "
                f"{reading.activity.value} full={reading.is_full} empty={reading.is_empty} "
                f"faults={sorted(reading.faults)} {reading.validation}"
            )

    print(f"{readings} readings, {flagged} flagged, {rejected} rejected")
    return 0


if __name__ == "__main__":
    sys.exit(main())
