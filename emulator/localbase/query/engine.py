"""
Query and mutation engine for LocalBase.

Resolves query plans against the shared state, applies mutations, keeps
durable storage in step and raises change notifications.

Every operation follows the same sequence:
    1. Hydrate from durable storage if this is the first operation
    2. Simulated latency (a suspension point)
    3. Simulated error check for (table, operation)
    4. Read or mutate the in-memory table
    5. Persist the whole database (mutations only)
    6. Dispatch change notifications (mutations only)

Invariants:
    - Errors are returned in QueryResult.error, never raised
    - Returned rows are copies; mutating them does not touch the table
    - Reads of a missing table yield an empty result, not an error
    - Persistence failures are logged by the adapter and never fail an
      operation

How to change safely:
    - New mutation paths must persist and dispatch like the existing ones
    - There are no locks: anything after the latency await sees whatever
      other operations wrote while this one was suspended
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import Settings
from ..errors import MultipleRowsError, NotFoundError, ValidationError
from ..ids import delay, generate_id, now_iso
from ..persistence import PersistenceAdapter
from ..realtime.bus import EventBus
from ..realtime.events import EventType
from ..state import Row, SharedState
from .plan import QueryPlan
from .result import QueryResult
from .table import RowInput, TableQuery

logger = logging.getLogger(__name__)


def row_key(row_id: Any) -> str:
    """Table key for a row id; ids are keyed by their text form."""
    return str(row_id)


def _normalize_rows(data: RowInput) -> Tuple[List[Dict[str, Any]], bool]:
    """Split input into a list of rows plus whether it was plural.

    Raises:
        ValidationError: If any row is not a mapping
    """
    plural = isinstance(data, (list, tuple))
    items: Sequence[Any] = data if plural else [data]
    rows = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Row {index} is not a mapping: {type(item).__name__}")
        rows.append(dict(item))
    return rows, plural


def _has_id(row: Mapping[str, Any]) -> bool:
    return row.get("id") not in (None, "")


class QueryEngine:
    """Executes plans and mutations over the shared state.

    Attributes:
        state: Shared state holding the database
        persistence: Adapter used after every mutation
        bus: Event bus for change notifications (None disables dispatch)
        settings: Latency configuration

    Example:
        >>> engine = QueryEngine(state, persistence, bus, Settings.for_tests())
        >>> await engine.from_("todos").insert({"title": "Buy milk"})
    """

    def __init__(
        self,
        state: SharedState,
        persistence: PersistenceAdapter,
        bus: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.state = state
        self.persistence = persistence
        self.bus = bus
        self.settings = settings or Settings()

    def from_(self, table: str) -> TableQuery:
        """Get a handle for one table."""
        return TableQuery(self, table)

    # Reads

    async def execute(self, plan: QueryPlan) -> QueryResult:
        """Resolve a plan as a collection."""
        await self.persistence.ensure_ready()
        await delay(self.settings.select_delay_ms)

        error = self.state.simulated_error(plan.table, "select")
        if error is not None:
            return QueryResult.failure(error)

        rows = [dict(row) for row in plan.resolve(self.state.rows(plan.table))]
        return QueryResult(data=rows, error=None, count=len(rows))

    async def execute_single(self, plan: QueryPlan) -> QueryResult:
        """Resolve a plan to exactly one row."""
        matched, result = await self._match_for_single(plan)
        if result is not None:
            return result
        if not matched:
            return QueryResult.failure(NotFoundError(plan.table))
        return QueryResult(data=dict(matched[0]))

    async def execute_maybe_single(self, plan: QueryPlan) -> QueryResult:
        """Resolve a plan to at most one row."""
        matched, result = await self._match_for_single(plan)
        if result is not None:
            return result
        if not matched:
            return QueryResult(data=None)
        return QueryResult(data=dict(matched[0]))

    async def _match_for_single(
        self, plan: QueryPlan
    ) -> Tuple[List[Row], Optional[QueryResult]]:
        """Filter-only match shared by the single-row forms.

        Returns the matched rows, or a failure result to return as-is.
        """
        await self.persistence.ensure_ready()
        await delay(self.settings.select_delay_ms)

        error = self.state.simulated_error(plan.table, "select")
        if error is not None:
            return [], QueryResult.failure(error)

        matched = plan.match_rows(self.state.rows(plan.table))
        if len(matched) > 1:
            return matched, QueryResult.failure(MultipleRowsError(plan.table, len(matched)))
        return matched, None

    # Writes

    async def insert(self, table: str, data: RowInput) -> QueryResult:
        """Store new rows, synthesizing id and created_at when missing."""
        await self.persistence.ensure_ready()
        await delay(self.settings.mutation_delay_ms)

        error = self.state.simulated_error(table, "insert")
        if error is not None:
            return QueryResult.failure(error)

        try:
            items, plural = _normalize_rows(data)
        except ValidationError as e:
            return QueryResult.failure(e)

        rows = self.state.ensure_table(table)
        inserted: List[Row] = []
        for item in items:
            record = {
                **item,
                "id": item["id"] if _has_id(item) else generate_id(),
                "created_at": item.get("created_at") or now_iso(),
            }
            rows[row_key(record["id"])] = record
            inserted.append(record)

        await self.persistence.persist_database()

        logger.debug("INSERT", extra={"table": table, "rows": len(inserted)})

        for record in inserted:
            self._dispatch(table, EventType.INSERT, record, None)

        copies = [dict(r) for r in inserted]
        return QueryResult(data=copies if plural else copies[0])

    async def upsert(self, table: str, data: RowInput) -> QueryResult:
        """Insert rows, merging onto existing rows with the same id."""
        await self.persistence.ensure_ready()
        await delay(self.settings.mutation_delay_ms)

        error = self.state.simulated_error(table, "insert")
        if error is not None:
            return QueryResult.failure(error)

        try:
            items, plural = _normalize_rows(data)
        except ValidationError as e:
            return QueryResult.failure(e)

        rows = self.state.ensure_table(table)
        changes: List[Tuple[Row, Optional[Row]]] = []
        for item in items:
            row_id = item["id"] if _has_id(item) else generate_id()
            existing = rows.get(row_key(row_id))
            now = now_iso()
            record = {
                **(existing or {}),
                **item,
                "id": row_id,
                "created_at": (existing or {}).get("created_at") or item.get("created_at") or now,
                "updated_at": now,
            }
            rows[row_key(row_id)] = record
            changes.append((record, dict(existing) if existing else None))

        await self.persistence.persist_database()

        logger.debug("UPSERT", extra={"table": table, "rows": len(changes)})

        for record, old in changes:
            event = EventType.UPDATE if old is not None else EventType.INSERT
            self._dispatch(table, event, record, old)

        copies = [dict(record) for record, _ in changes]
        return QueryResult(data=copies if plural else copies[0])

    async def update(self, plan: QueryPlan, values: Mapping[str, Any]) -> QueryResult:
        """Merge values onto every row matching the plan's filters."""
        await self.persistence.ensure_ready()
        await delay(self.settings.mutation_delay_ms)

        error = self.state.simulated_error(plan.table, "update")
        if error is not None:
            return QueryResult.failure(error)

        rows = self.state.get_table(plan.table)
        if rows is None:
            return QueryResult(data=[])

        changes: List[Tuple[Row, Row]] = []
        for old in plan.match_rows(list(rows.values())):
            updated = {**old, **values, "updated_at": now_iso()}
            key = row_key(old.get("id"))
            new_key = row_key(updated.get("id"))
            if new_key != key:
                rows.pop(key, None)
            rows[new_key] = updated
            changes.append((updated, old))

        await self.persistence.persist_database()

        logger.debug("Updated rows", extra={"table": plan.table, "count": len(changes)})

        for updated, old in changes:
            self._dispatch(plan.table, EventType.UPDATE, updated, old)

        return QueryResult(data=[dict(updated) for updated, _ in changes])

    async def delete(self, plan: QueryPlan) -> QueryResult:
        """Remove every row matching the plan's filters."""
        await self.persistence.ensure_ready()
        await delay(self.settings.mutation_delay_ms)

        error = self.state.simulated_error(plan.table, "delete")
        if error is not None:
            return QueryResult.failure(error)

        rows = self.state.get_table(plan.table)
        if rows is None:
            return QueryResult(data=[])

        removed = plan.match_rows(list(rows.values()))
        for row in removed:
            rows.pop(row_key(row.get("id")), None)

        await self.persistence.persist_database()

        logger.debug("Deleted rows", extra={"table": plan.table, "count": len(removed)})

        for row in removed:
            self._dispatch(plan.table, EventType.DELETE, None, row)

        return QueryResult(data=[dict(row) for row in removed])

    def _dispatch(
        self,
        table: str,
        event_type: EventType,
        new: Optional[Row],
        old: Optional[Row],
    ) -> None:
        if self.bus is None or not self.bus.is_open:
            return
        self.bus.dispatch(
            table,
            event_type,
            dict(new) if new is not None else None,
            dict(old) if old is not None else None,
        )
