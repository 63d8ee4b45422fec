"""
Table handle: the entry point for operations on one table.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Union

from .builder import MutationKind, MutationQuery, SelectQuery
from .plan import QueryPlan
from .result import QueryResult

if TYPE_CHECKING:
    from .engine import QueryEngine

logger = logging.getLogger(__name__)

RowInput = Union[Mapping[str, Any], List[Mapping[str, Any]]]


class TableQuery:
    """Operations scoped to one table.

    Constructing a handle creates the table if it does not exist yet.

    Example:
        >>> todos = client.from_("todos")
        >>> await todos.insert({"title": "Buy milk"})
        >>> await todos.select().eq("title", "Buy milk").execute_single()
    """

    def __init__(self, engine: "QueryEngine", table: str) -> None:
        self.engine = engine
        self.table = table
        engine.state.ensure_table(table)

    def select(self, columns: str = "*") -> SelectQuery:
        logger.debug("SELECT", extra={"table": self.table, "columns": columns})
        return SelectQuery(engine=self.engine, plan=QueryPlan(self.table), columns=columns)

    async def insert(self, data: RowInput) -> QueryResult:
        """Insert one row or a list of rows."""
        return await self.engine.insert(self.table, data)

    async def upsert(self, data: RowInput) -> QueryResult:
        """Insert rows, merging onto existing rows with the same id."""
        return await self.engine.upsert(self.table, data)

    def update(self, values: Mapping[str, Any]) -> MutationQuery:
        """Start an update; add filters, then execute()."""
        logger.debug("UPDATE", extra={"table": self.table})
        return MutationQuery(
            engine=self.engine,
            plan=QueryPlan(self.table),
            kind=MutationKind.UPDATE,
            values=dict(values),
        )

    def delete(self) -> MutationQuery:
        """Start a delete; add filters, then execute()."""
        logger.debug("DELETE", extra={"table": self.table})
        return MutationQuery(
            engine=self.engine,
            plan=QueryPlan(self.table),
            kind=MutationKind.DELETE,
        )

    def rows(self) -> List[Dict[str, Any]]:
        """Current rows without latency or filters (debug helper)."""
        return [dict(row) for row in self.engine.state.rows(self.table)]
