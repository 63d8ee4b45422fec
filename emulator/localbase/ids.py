"""
Identifier, timestamp and latency helpers.

Generated identifiers keep a fixed format so rows
written by older builds stay readable: ``mock-id-<unix ms>-<9 base36 chars>``.
Timestamps are ISO-8601 UTC strings with millisecond precision and a
trailing ``Z``; they sort lexicographically in time order.
"""

from __future__ import annotations

import asyncio
import secrets
import string
import time
from datetime import datetime, timezone

_BASE36 = string.digits + string.ascii_lowercase


def random_suffix(length: int = 9) -> str:
    """Random lowercase base36 string."""
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_id(prefix: str = "mock-id") -> str:
    """Synthesize a row identifier.

    Timestamp plus random suffix, unique enough that two ids generated in
    the same millisecond do not collide in practice.
    """
    return f"{prefix}-{int(time.time() * 1000)}-{random_suffix()}"


def now_iso() -> str:
    """Current UTC time, e.g. ``2026-10-16T12:00:00.123Z``."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


async def delay(ms: int) -> None:
    """Simulate network latency.

    Always yields to the event loop, even for zero, so a delayed operation
    is a suspension point regardless of configuration.
    """
    await asyncio.sleep(max(ms, 0) / 1000.0)
