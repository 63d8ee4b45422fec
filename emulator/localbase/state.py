"""
Shared state store for LocalBase.

Holds every piece of mutable emulator state:
- database: table name -> {row id -> row}
- users: user directory owned by the auth emulator (opaque records)
- session: current session blob owned by the auth emulator
- files: file blobs owned by the storage emulator
- rpc_handlers: stored procedure name -> async handler
- simulated_errors: table -> operation -> injected error

The realtime registry is not kept here; it lives on an EventBus that is
created and injected explicitly.

Invariants:
    - Within a table, row ids are unique (they are the dict keys)
    - Tables keep insertion order, which is the order reads see before
      any ordering is applied
    - Only reset() tears the state down

How to change safely:
    - Every mutation of ``database`` must be followed by a persist
    - Keep the serialized layout ({table: {id: row}}) stable
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Table = Dict[str, Row]
RpcHandler = Callable[[Optional[Dict[str, Any]]], Awaitable[Any]]

DATABASE_OPERATIONS = ("select", "insert", "update", "delete")


@dataclass
class SharedState:
    """Process-wide emulator state.

    Attributes:
        database: Table name to rows keyed by id
        users: Email to user record
        session: Current session or None
        files: "bucket/path" to file record
        rpc_handlers: Registered stored procedure handlers
        simulated_errors: Injected errors per table and operation
        is_initialized: Whether hydration from durable storage has run
    """

    database: Dict[str, Table] = field(default_factory=dict)
    users: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    session: Optional[Dict[str, Any]] = None
    files: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    rpc_handlers: Dict[str, RpcHandler] = field(default_factory=dict)
    simulated_errors: Dict[str, Dict[str, Exception]] = field(default_factory=dict)
    is_initialized: bool = False

    def get_table(self, name: str) -> Optional[Table]:
        """Get a table without creating it."""
        return self.database.get(name)

    def ensure_table(self, name: str) -> Table:
        """Get a table, creating it empty on first reference."""
        table = self.database.get(name)
        if table is None:
            table = {}
            self.database[name] = table
            logger.debug("Created table", extra={"table": name})
        return table

    def rows(self, name: str) -> List[Row]:
        """Rows of a table in insertion order (empty for a missing table)."""
        table = self.database.get(name)
        return list(table.values()) if table else []

    def simulated_error(self, table: str, operation: str) -> Optional[Exception]:
        """Injected error for a table operation, if any."""
        return self.simulated_errors.get(table, {}).get(operation)

    def database_snapshot(self) -> Dict[str, Dict[str, Row]]:
        """Serializable copy of the database."""
        return {name: dict(table) for name, table in self.database.items()}

    def load_database(self, data: Dict[str, Dict[str, Row]]) -> None:
        """Replace the database with a deserialized snapshot."""
        self.database.clear()
        for name, rows in data.items():
            self.database[name] = dict(rows)

    def reset(self) -> None:
        """Drop all state, as after a fresh install."""
        self.database.clear()
        self.users.clear()
        self.session = None
        self.files.clear()
        self.rpc_handlers.clear()
        self.simulated_errors.clear()
        self.is_initialized = False


# Default shared state instance
_default_state: SharedState | None = None


def get_shared_state() -> SharedState:
    """Get the process-wide shared state, creating it on first use."""
    global _default_state
    if _default_state is None:
        _default_state = SharedState()
    return _default_state


def reset_shared_state() -> None:
    """Tear down the process-wide shared state (test helper)."""
    global _default_state
    if _default_state is not None:
        _default_state.reset()
    _default_state = None
