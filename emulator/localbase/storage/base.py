"""
Base protocol and errors for the durable key-value store.

The persistence adapter writes whole datasets (database, users, session)
as one serialized string per key. Any store that offers async
get/set/delete by string key can back it.

Invariants:
    - set() returns only after the value is stored
    - get() of a missing key returns None, never raises for absence
    - delete() of a missing key is a no-op

How to change safely:
    - Protocol changes require updating all implementations
    - Add new methods as optional with default implementations
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List, Optional, Protocol, runtime_checkable
import logging

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for key-value store operations."""
    pass


class StorageConnectionError(StorageError):
    """Store is not connected or the connection failed."""
    pass


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for durable key-value backends.

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> await store.connect()
        >>> await store.set("mock.supabase.database", "{}")
        >>> await store.get("mock.supabase.database")
        '{}'
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the store. Must be called before any other operation.

        Raises:
            StorageConnectionError: If the backend cannot be opened
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release resources. Stored values survive."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string or None if absent

        Raises:
            StorageConnectionError: If not connected
            StorageError: For other read failures
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one.

        Raises:
            StorageConnectionError: If not connected
            StorageError: For other write failures
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value if present."""
        ...

    @abstractmethod
    async def keys(self) -> List[str]:
        """List stored keys in sorted order."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the store is open."""
        ...


def create_kv_store(settings: "Settings") -> KeyValueStore:
    """Factory function to create a key-value store from settings.

    Args:
        settings: Emulator settings

    Returns:
        Appropriate KeyValueStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StorageBackend
    from .memory import InMemoryKeyValueStore
    from .sqlite import SqliteKeyValueStore

    if settings.storage_backend == StorageBackend.MEMORY:
        return InMemoryKeyValueStore()
    elif settings.storage_backend == StorageBackend.SQLITE:
        return SqliteKeyValueStore(settings.sqlite_path)
    else:
        raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
