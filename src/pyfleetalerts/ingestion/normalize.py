"""Normalization helpers.

Centralizes defensive parsing of untyped feed values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse a finite float, returning ``None`` for anything else.

    Booleans are rejected explicitly: the feed uses them for flags, and
    ``float(True)`` would silently turn a flag into a reading of ``1.0``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in {"", "--"}:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_bool(value: Any) -> bool:
    """Interpret a feed flag. Only ``True`` and the string ``"true"`` count."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def is_enabled_limit(limit: float | None) -> bool:
    """A threshold of zero, a negative one or none at all disables its rule."""
    return limit is not None and limit > 0

