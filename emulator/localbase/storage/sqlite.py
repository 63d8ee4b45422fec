"""
SQLite-file key-value store for LocalBase.

Keeps the emulator's datasets across process restarts on a developer
machine. One file holds every key.

Table schema:
    kv_entries:
        - key TEXT PRIMARY KEY
        - value TEXT NOT NULL
        - updated_at INTEGER (Unix ms)

Invariants:
    - Each operation opens and closes its own connection
    - Writes are single-statement upserts, atomic per key
    - The parent directory is created on connect()

How to change safely:
    - Schema changes must stay readable by older files
    - Keep key strings stable; they are shared with the hosted SDK layout
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from .base import StorageConnectionError, StorageError

logger = logging.getLogger(__name__)


class SqliteKeyValueStore:
    """Durable KeyValueStore backed by a single SQLite file.

    Example:
        >>> store = SqliteKeyValueStore("/tmp/localbase/localbase.db")
        >>> await store.connect()
        >>> await store.set("mock.supabase.database", '{"todos": {}}')
    """

    def __init__(self, path: str | Path, busy_timeout_ms: int = 5000) -> None:
        """Initialize the store.

        Args:
            path: SQLite database file
            busy_timeout_ms: SQLite busy timeout
        """
        self.path = Path(path)
        self.busy_timeout_ms = busy_timeout_ms
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a connection to the store file.

        Raises:
            StorageConnectionError: If not connected
            StorageError: If SQLite reports an error
        """
        if not self._connected:
            raise StorageConnectionError("Not connected")

        try:
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise StorageConnectionError(f"Failed to open {self.path}: {e}") from e

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"SQLite operation failed: {e}") from e
        finally:
            conn.close()

    async def connect(self) -> None:
        """Create the file and schema if they don't exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._connected = True
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
        logger.info(f"Opened key-value store: {self.path}")

    async def close(self) -> None:
        self._connected = False

    async def get(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT value FROM kv_entries WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, value, int(time.time() * 1000)),
            )

    async def delete(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))

    async def keys(self) -> list[str]:
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT key FROM kv_entries ORDER BY key")
            return [row[0] for row in cursor.fetchall()]
