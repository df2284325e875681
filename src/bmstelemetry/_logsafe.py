"""Helpers for compact debug logging.

Raw payloads can carry long sensor arrays or arbitrary junk from a
misbehaving controller. This module shortens them before they reach a
DEBUG log line.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def truncate_for_log(value: Any, *, max_string: int = 256, max_items: int = 16, _depth: int = 0) -> Any:
    """Return a shortened copy of *value* suitable for debug logs."""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        if len(value) > max_string:
            return f"<bytes:{len(value)}b>"
        return truncate_for_log(value.decode("utf-8", errors="replace"), max_string=max_string)

    if isinstance(value, Mapping):
        return {
            str(k): truncate_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, Sequence):
        items = [
            truncate_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for v in list(value)[:max_items]
        ]
        if len(value) > max_items:
            items.append(f"<+{len(value) - max_items} items>")
        return items

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
