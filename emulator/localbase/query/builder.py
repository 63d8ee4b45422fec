"""
Fluent query builders.

Builders are frozen values wrapping a QueryPlan and the engine that will
run it. Each chained call returns a new builder; nothing runs until one
of the explicit execute methods is awaited.

    result = await client.from_("todos").select().eq("completed", False).order("created_at").execute()
    result = await client.from_("todos").update({"completed": True}).eq("id", todo_id).execute()
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping

from .plan import QueryPlan
from .result import QueryResult

if TYPE_CHECKING:
    from .engine import QueryEngine


class _FilterMethods:
    """Filter accumulation shared by select and mutation builders."""

    plan: QueryPlan

    def _with_plan(self, plan: QueryPlan) -> Any:
        return replace(self, plan=plan)

    def eq(self, column: str, value: Any):
        return self._with_plan(self.plan.eq(column, value))

    def neq(self, column: str, value: Any):
        return self._with_plan(self.plan.neq(column, value))

    def gt(self, column: str, value: Any):
        return self._with_plan(self.plan.gt(column, value))

    def gte(self, column: str, value: Any):
        return self._with_plan(self.plan.gte(column, value))

    def lt(self, column: str, value: Any):
        return self._with_plan(self.plan.lt(column, value))

    def lte(self, column: str, value: Any):
        return self._with_plan(self.plan.lte(column, value))

    def like(self, column: str, pattern: str):
        return self._with_plan(self.plan.like(column, pattern))

    def ilike(self, column: str, pattern: str):
        return self._with_plan(self.plan.ilike(column, pattern))

    def in_(self, column: str, values: Iterable[Any]):
        return self._with_plan(self.plan.in_(column, values))

    def match(self, query: Mapping[str, Any]):
        return self._with_plan(self.plan.match(query))


@dataclass(frozen=True)
class SelectQuery(_FilterMethods):
    """Read builder with filters, ordering and pagination.

    Attributes:
        engine: Engine that resolves the plan
        plan: Accumulated query plan
        columns: Requested column list, informational only
    """

    engine: "QueryEngine" = field(repr=False, compare=False)
    plan: QueryPlan
    columns: str = "*"

    def order(self, column: str, ascending: bool = True) -> SelectQuery:
        return self._with_plan(self.plan.order(column, ascending))

    def limit(self, count: int) -> SelectQuery:
        return self._with_plan(self.plan.limit(count))

    def range(self, start: int, end: int) -> SelectQuery:
        return self._with_plan(self.plan.range(start, end))

    async def execute(self) -> QueryResult:
        """Resolve as a collection: data is a list, count its length."""
        return await self.engine.execute(self.plan)

    async def execute_single(self) -> QueryResult:
        """Resolve to exactly one row, or a not-found/multiplicity error."""
        return await self.engine.execute_single(self.plan)

    async def execute_maybe_single(self) -> QueryResult:
        """Resolve to at most one row; zero rows is not an error."""
        return await self.engine.execute_maybe_single(self.plan)


class MutationKind(str, Enum):
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class MutationQuery(_FilterMethods):
    """Update or delete builder; filters select the affected rows."""

    engine: "QueryEngine" = field(repr=False, compare=False)
    plan: QueryPlan
    kind: MutationKind
    values: Dict[str, Any] = field(default_factory=dict)

    async def execute(self) -> QueryResult:
        """Apply the mutation and return the affected rows."""
        if self.kind == MutationKind.UPDATE:
            return await self.engine.update(self.plan, self.values)
        return await self.engine.delete(self.plan)
