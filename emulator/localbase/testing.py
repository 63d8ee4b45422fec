"""
Test and debug helpers for LocalBase.

Reach inside a client to seed tables, inject failures, fire realtime
events by hand and manage stored procedure handlers. None of this is
part of the hosted SDK surface.

Example:
    >>> helpers = LocalBaseHelpers(client)
    >>> await helpers.seed_table("todos", [{"id": "t1", "title": "Seeded"}])
    >>> helpers.simulate_error("todos", "select", SimulatedError("boom"))
    >>> helpers.trigger_realtime_event("todos", "INSERT", {"id": "t2"})

Invariants:
    - Helpers that change the database persist it afterwards
    - Simulated errors stay in place until cleared
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

from .errors import SimulatedError
from .ids import generate_id, now_iso
from .query.engine import row_key
from .realtime.events import EventType
from .state import DATABASE_OPERATIONS, Row, RpcHandler, Table

if TYPE_CHECKING:
    from .client import LocalBaseClient

logger = logging.getLogger(__name__)


class LocalBaseHelpers:
    """Test-only controls over a client's state, storage and bus."""

    def __init__(self, client: "LocalBaseClient") -> None:
        self.client = client

    @property
    def state(self):
        return self.client.state

    # Data

    async def clear_all(self) -> None:
        """Reset the state, drop every channel and wipe durable storage."""
        await self.client.persistence.ensure_ready()
        self.state.reset()
        self.client.bus.reset()
        await self.client.persistence.clear_all()
        # Nothing left to hydrate; keep later operations from reloading
        self.state.is_initialized = True
        logger.info("Cleared all LocalBase data")

    def get_table_data(self, table: str) -> List[Row]:
        """Copies of a table's rows in insertion order."""
        return [dict(row) for row in self.state.rows(table)]

    async def seed_table(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Row]:
        """Replace a table's contents, without latency, errors or dispatch.

        Rows already in the table are dropped. Rows without an id get a
        generated one; created_at defaults to now.

        Returns:
            The stored rows
        """
        await self.client.persistence.ensure_ready()
        target: Table = {}
        seeded = []
        for row in rows:
            record = dict(row)
            if record.get("id") in (None, ""):
                record["id"] = generate_id()
            record.setdefault("created_at", now_iso())
            target[row_key(record["id"])] = record
            seeded.append(dict(record))
        self.state.database[table] = target

        await self.client.persistence.persist_database()
        logger.debug("Seeded table", extra={"table": table, "rows": len(seeded)})
        return seeded

    async def purge_user_rows(self, user_id: str) -> int:
        """Delete every row whose id or user_id equals ``user_id``.

        Returns:
            Number of rows removed across all tables
        """
        await self.client.persistence.ensure_ready()
        removed = 0
        for table in self.state.database.values():
            doomed = [
                key
                for key, row in table.items()
                if row.get("id") == user_id or row.get("user_id") == user_id
            ]
            for key in doomed:
                del table[key]
            removed += len(doomed)

        if removed:
            await self.client.persistence.persist_database()
        logger.info("Purged user rows", extra={"user_id": user_id, "rows": removed})
        return removed

    # Simulated errors

    def simulate_error(
        self,
        table: str,
        operation: str,
        error: Optional[Exception] = None,
    ) -> None:
        """Make one table operation fail until cleared.

        Args:
            table: Table name
            operation: select, insert, update or delete (upsert uses insert)
            error: Error to return; None clears the entry

        Raises:
            ValueError: If the operation is not a database operation
        """
        if operation not in DATABASE_OPERATIONS:
            raise ValueError(
                f"Unknown operation {operation!r}, expected one of {', '.join(DATABASE_OPERATIONS)}"
            )

        if error is None:
            ops = self.state.simulated_errors.get(table)
            if ops is not None:
                ops.pop(operation, None)
                if not ops:
                    del self.state.simulated_errors[table]
            return

        self.state.simulated_errors.setdefault(table, {})[operation] = error
        logger.debug("Simulating error", extra={"table": table, "operation": operation})

    def fail_next(self, table: str, operation: str, message: str = "Simulated failure") -> SimulatedError:
        """Shorthand for simulate_error() with a SimulatedError."""
        error = SimulatedError(message, table=table, operation=operation)
        self.simulate_error(table, operation, error)
        return error

    def get_simulated_error(self, table: str, operation: str) -> Optional[Exception]:
        return self.state.simulated_error(table, operation)

    def clear_simulated_errors(self) -> None:
        self.state.simulated_errors.clear()

    # Realtime

    def trigger_realtime_event(
        self,
        table: str,
        event_type: EventType | str,
        new: Optional[Row],
        old: Optional[Row] = None,
    ) -> int:
        """Dispatch a change notification without touching any table.

        Returns:
            Number of listeners reached
        """
        return self.client.bus.dispatch(table, event_type, new, old)

    def get_realtime_subscriptions(self) -> List[Dict[str, str]]:
        return self.client.bus.subscriptions()

    def clear_realtime_subscriptions(self) -> None:
        self.client.bus.clear()

    # Stored procedures

    def register_rpc_handler(self, function_name: str, handler: RpcHandler) -> None:
        self.state.rpc_handlers[function_name] = handler
        logger.debug("Registered RPC handler", extra={"function": function_name})

    def unregister_rpc_handler(self, function_name: str) -> bool:
        return self.state.rpc_handlers.pop(function_name, None) is not None

    def clear_rpc_handlers(self) -> None:
        self.state.rpc_handlers.clear()
