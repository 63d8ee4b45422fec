"""
Value comparison shared by query filters and realtime subscription filters.
"""

from __future__ import annotations

from typing import Any


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that does not conflate booleans with numbers."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    try:
        return bool(left == right)
    except Exception:
        return False


def as_text(value: Any) -> str:
    """Stringify a value the way pattern filters see it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
