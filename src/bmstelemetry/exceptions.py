"""Custom exception hierarchy for bmstelemetry.

Data-quality problems in telemetry never raise; they become flags on the
emitted reading. The exceptions below are reserved for misconfiguration
and for payloads that cannot be turned into a frame at all.
"""

from __future__ import annotations


class BmsError(Exception):
    """Base exception for all bmstelemetry errors."""


class BmsConfigError(BmsError):
    """Invalid or inconsistent engine configuration (e.g. an empty bit table)."""


class BmsUnitHaltedError(BmsError):
    """A unit's pipeline was halted by an earlier fatal error.

    Raised for every frame submitted for the unit until the owner calls
    :meth:`bmstelemetry.snapshot.SnapshotBuilder.reset`.
    """

    def __init__(self, message: str, *, unit_id: str = "") -> None:
        self.unit_id = unit_id
        super().__init__(message)


class BmsPayloadError(BmsError):
    """Raw payload could not be decoded into a frame or location."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)
