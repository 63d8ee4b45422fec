"""
Durable key-value store abstraction for LocalBase.

Backends:
- In-memory (tests, throwaway sessions)
- SQLite file (local development across restarts)

The persistence adapter is the only caller; it treats every failure
from these stores as best-effort and never lets it reach a query.
"""

from .base import (
    KeyValueStore,
    StorageConnectionError,
    StorageError,
    create_kv_store,
)
from .memory import InMemoryKeyValueStore
from .sqlite import SqliteKeyValueStore

__all__ = [
    # Protocol and errors
    "KeyValueStore",
    "StorageError",
    "StorageConnectionError",
    # Factory
    "create_kv_store",
    # Implementations
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
]
