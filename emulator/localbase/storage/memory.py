"""
In-memory key-value store.

This module provides a dict-backed store for:
- Unit tests
- Integration tests
- Running the emulator with nothing written to disk

Invariants:
    - All data is lost on process exit
    - close() keeps data, so a reconnect simulates an app restart
    - Injected failures fire on the next operations, then clear

How to change safely:
    - Keep interface compatible with the KeyValueStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .base import StorageConnectionError, StorageError

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStore for testing.

    Attributes:
        write_count: Number of successful set() calls (testing helper)

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> await store.connect()
        >>> await store.set("key", "value")
        >>> store.snapshot()
        {'key': 'value'}
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        """Initialize in-memory store.

        Args:
            initial: Optional pre-populated contents, as if left by a previous run
        """
        self._data: Dict[str, str] = dict(initial or {})
        self._connected = False
        self._pending_failures: List[Exception] = []
        self.write_count = 0

    @property
    def is_connected(self) -> bool:
        """Whether connected (always true after connect())."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemoryKeyValueStore connected")

    async def close(self) -> None:
        """Disconnect, keeping stored values."""
        self._connected = False
        logger.debug("InMemoryKeyValueStore closed")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._check()
        self._data[key] = value
        self.write_count += 1
        logger.debug("Value stored", extra={"key": key, "size": len(value)})

    async def delete(self, key: str) -> None:
        self._check()
        self._data.pop(key, None)

    async def keys(self) -> List[str]:
        self._check()
        return sorted(self._data)

    def _check(self) -> None:
        if not self._connected:
            raise StorageConnectionError("Not connected")
        if self._pending_failures:
            raise self._pending_failures.pop(0)

    # Testing helpers

    def inject_failure(self, exception: Optional[Exception] = None, count: int = 1) -> None:
        """Make the next ``count`` operations raise.

        Args:
            exception: Exception to raise (defaults to StorageError)
            count: Number of operations that fail
        """
        exc = exception or StorageError("Injected storage failure")
        self._pending_failures.extend([exc] * count)

    def snapshot(self) -> Dict[str, str]:
        """Copy of the stored contents (testing helper)."""
        return dict(self._data)

    def clear(self) -> None:
        """Drop all stored values (testing helper)."""
        self._data.clear()
        self.write_count = 0
