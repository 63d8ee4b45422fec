"""
Persistence adapter for LocalBase.

Mirrors the shared state into a durable key-value store as three
independent JSON blobs:

    supabase.auth.token      session
    mock.supabase.users      user directory, list of [email, record] pairs
    mock.supabase.database   {table: {id: row}}

Each blob is read once at hydration and rewritten wholesale after every
mutation to its domain.

Invariants:
    - Failures are logged and swallowed; no caller ever sees one
    - The in-memory state may be ahead of the stored copy, never behind
      once a persist call has returned
    - Hydration runs at most once per state (is_initialized)

How to change safely:
    - Storage keys are shared with the hosted SDK's layout; keep them
    - New datasets get their own key, never a field inside another blob
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from .state import SharedState
from .storage.base import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageKeys:
    """Keys of the persisted datasets."""

    session: str = "supabase.auth.token"
    users: str = "mock.supabase.users"
    database: str = "mock.supabase.database"


STORAGE_KEYS = StorageKeys()


class PersistenceAdapter:
    """Best-effort bridge between SharedState and a KeyValueStore.

    Example:
        >>> adapter = PersistenceAdapter(store, state)
        >>> await adapter.hydrate()
        >>> state.ensure_table("todos")["t1"] = {"id": "t1"}
        >>> await adapter.persist_database()
    """

    def __init__(
        self,
        store: KeyValueStore,
        state: SharedState,
        keys: StorageKeys = STORAGE_KEYS,
    ) -> None:
        self.store = store
        self.state = state
        self.keys = keys
        self._ready_lock = asyncio.Lock()

    async def load(self, key: str) -> Any:
        """Read and decode one blob.

        Returns:
            Decoded value, or None if absent or unreadable
        """
        try:
            raw = await self.store.get(key)
            return json.loads(raw) if raw else None
        except Exception as e:
            logger.error(f"Failed to load {key}: {e}", extra={"key": key}, exc_info=True)
            return None

    async def save(self, key: str, value: Any) -> bool:
        """Encode and write one blob.

        Returns:
            True if the write succeeded
        """
        try:
            await self.store.set(key, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"Failed to save {key}: {e}", extra={"key": key}, exc_info=True)
            return False

    async def remove(self, key: str) -> None:
        """Delete one blob."""
        try:
            await self.store.delete(key)
        except Exception as e:
            logger.error(f"Failed to remove {key}: {e}", extra={"key": key}, exc_info=True)

    async def hydrate(self) -> None:
        """Load persisted datasets into the shared state, once.

        A session is restored only while its expires_at lies in the future;
        any other stored session is removed.
        The state is marked initialized even if loading failed.
        """
        if self.state.is_initialized:
            return

        session = await self.load(self.keys.session)
        if isinstance(session, dict):
            expires_at = session.get("expires_at")
            if expires_at and expires_at > int(time.time()):
                self.state.session = session
                logger.debug("Restored session")
            else:
                await self.remove(self.keys.session)
                logger.debug("Session expired or without expiry, removed")

        users = await self.load(self.keys.users)
        if isinstance(users, list):
            self.state.users.clear()
            for entry in users:
                if isinstance(entry, (list, tuple)) and len(entry) == 2:
                    self.state.users[entry[0]] = entry[1]
            if self.state.users:
                logger.debug("Restored users", extra={"count": len(self.state.users)})

        database = await self.load(self.keys.database)
        if isinstance(database, dict):
            self.state.load_database(database)
            if self.state.database:
                logger.debug("Restored tables", extra={"count": len(self.state.database)})

        self.state.is_initialized = True

    async def ensure_ready(self) -> None:
        """Connect the store if needed and hydrate, once.

        Called before every engine operation. A store that fails to
        connect is logged; the state then runs purely in memory.
        """
        if self.state.is_initialized:
            return

        async with self._ready_lock:
            if self.state.is_initialized:
                return
            if not self.store.is_connected:
                try:
                    await self.store.connect()
                except Exception as e:
                    logger.error(f"Failed to connect storage: {e}", exc_info=True)
            await self.hydrate()

    async def persist_database(self) -> bool:
        """Write the entire database."""
        return await self.save(self.keys.database, self.state.database_snapshot())

    async def persist_users(self) -> bool:
        """Write the user directory."""
        return await self.save(self.keys.users, [[k, v] for k, v in self.state.users.items()])

    async def persist_session(self) -> bool:
        """Write the current session, or remove it when there is none."""
        if self.state.session is None:
            await self.remove(self.keys.session)
            return True
        return await self.save(self.keys.session, self.state.session)

    async def clear_all(self) -> None:
        """Remove every persisted dataset."""
        await self.remove(self.keys.session)
        await self.remove(self.keys.users)
        await self.remove(self.keys.database)
