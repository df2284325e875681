"""Internal constants shared across the library."""

from __future__ import annotations

# ------------------------------------------------------------------
# MQTT topics published by the tracker firmware
# ------------------------------------------------------------------

TOPIC_BATTERY = "/bicycle/battery-status"
TOPIC_GPS = "/bicycle/gps-coordinates"

# ------------------------------------------------------------------
# Bitmask tables
# ------------------------------------------------------------------

# Width of the firmware's balancing_status register (uint32).
BALANCING_REGISTER_BITS = 32

# Libre Solar BMS ``BmsErrorFlag`` bit positions.
DEFAULT_FAULT_BITS: dict[int, str] = {
    0: "CellUndervoltage",
    1: "CellOvervoltage",
    2: "ShortCircuit",
    3: "DischargeOvercurrent",
    4: "ChargeOvercurrent",
    5: "OpenWire",
    6: "DischargeUndertemp",
    7: "DischargeOvertemp",
    8: "ChargeUndertemp",
    9: "ChargeOvertemp",
    10: "InternalOvertemp",
    11: "CellFailure",
    12: "DischargeOff",
    13: "ChargeOff",
    14: "FetOvertemp",
}


def default_balancing_bits(width: int = BALANCING_REGISTER_BITS) -> dict[int, str]:
    """Return a ``{bit: "cell_N"}`` table (1-based names) for *width* cells."""
    return {index: f"cell_{index + 1}" for index in range(width)}


# Quantization used for stored GPS coordinates (~1 cm).
COORDINATE_PLACES = 7
