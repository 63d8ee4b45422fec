"""
LocalBase - In-process emulator of a hosted Postgres-backed backend.

This package lets application code and tests run against a local stand-in
for a hosted backend client:
- Tables of JSON rows with a chainable query and mutation API
- Realtime change notifications over named channels
- Durable persistence of the whole dataset in a key-value store
- Stored procedure (RPC) handlers registered at runtime

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │ Application │────▶│ LocalBase   │────▶│  QueryEngine    │
    │  / Tests    │     │   Client    │     │                 │
    └─────────────┘     └──────┬──────┘     └────────┬────────┘
                               │                     │
                               ▼                     ▼
                        ┌─────────────┐     ┌─────────────────┐
                        │  EventBus   │◀────│   SharedState   │
                        │ (channels)  │     │ (tables, RPC)   │
                        └─────────────┘     └────────┬────────┘
                                                     │
                                                     ▼
                                            ┌─────────────────┐
                                            │ Persistence ──▶ │
                                            │ KeyValueStore   │
                                            │ (memory/SQLite) │
                                            └─────────────────┘

Invariants:
    - Query and mutation errors are returned in results, never raised
    - Every successful mutation is persisted, then dispatched
    - The in-memory state is authoritative; storage is best-effort

How to change safely:
    - Keep the persisted key layout stable; existing datasets depend on it
    - Keep the builder surface close to the hosted SDK so apps can switch
"""

from ._version import __version__
from .client import LocalBaseClient, create_client
from .config import Settings, StorageBackend, get_settings
from .errors import (
    ChannelError,
    LocalBaseError,
    MultipleRowsError,
    NotFoundError,
    RpcNotImplementedError,
    SimulatedError,
    ValidationError,
)
from .logs import setup_logging
from .query import QueryResult
from .realtime import ChannelStatus, EventBus, EventType, RealtimePayload
from .state import SharedState, get_shared_state, reset_shared_state
from .testing import LocalBaseHelpers

__all__ = [
    "__version__",
    # Client
    "LocalBaseClient",
    "create_client",
    "QueryResult",
    # Realtime
    "EventBus",
    "EventType",
    "ChannelStatus",
    "RealtimePayload",
    # State
    "SharedState",
    "get_shared_state",
    "reset_shared_state",
    # Configuration
    "Settings",
    "StorageBackend",
    "get_settings",
    "setup_logging",
    # Errors
    "LocalBaseError",
    "NotFoundError",
    "MultipleRowsError",
    "ValidationError",
    "RpcNotImplementedError",
    "SimulatedError",
    "ChannelError",
    # Testing
    "LocalBaseHelpers",
]
