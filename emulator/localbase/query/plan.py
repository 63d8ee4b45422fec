"""
Immutable query plans.

A QueryPlan describes what to read from one table: filters, at most one
ordering key, and a pagination mode. Every builder method returns a new
plan, so a partially built plan can be shared and extended from several
places without interference.

Invariants:
    - Filters are only ever appended; they combine with AND
    - order() replaces the previous ordering key
    - If both range() and limit() are set, range wins and limit is ignored.
      This is long-standing behavior that existing apps rely on; it is
      kept for compatibility even though it is likely unintended.
    - resolve() is a pure function of the plan and the input rows
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ..state import Row
from .filters import (
    Filter,
    FilterOp,
    Ordering,
    apply_filters,
    apply_ordering,
    apply_pagination,
)


@dataclass(frozen=True)
class QueryPlan:
    """Deferred description of a query over one table.

    Attributes:
        table: Table name
        filters: Accumulated predicates
        ordering: Sort key, if any
        limit_count: Row cap, if any
        range_bounds: Inclusive (from, to) slice, if any

    Example:
        >>> plan = QueryPlan("todos").eq("completed", False).order("created_at")
        >>> plan.resolve(rows)
    """

    table: str
    filters: Tuple[Filter, ...] = ()
    ordering: Optional[Ordering] = None
    limit_count: Optional[int] = None
    range_bounds: Optional[Tuple[int, int]] = None

    def where(self, column: str, op: FilterOp, operand: Any) -> QueryPlan:
        """Append a predicate."""
        return replace(self, filters=self.filters + (Filter(column, FilterOp(op), operand),))

    def eq(self, column: str, value: Any) -> QueryPlan:
        return self.where(column, FilterOp.EQ, value)

    def neq(self, column: str, value: Any) -> QueryPlan:
        return self.where(column, FilterOp.NEQ, value)

    def gt(self, column: str, value: Any) -> QueryPlan:
        return self.where(column, FilterOp.GT, value)

    def gte(self, column: str, value: Any) -> QueryPlan:
        return self.where(column, FilterOp.GTE, value)

    def lt(self, column: str, value: Any) -> QueryPlan:
        return self.where(column, FilterOp.LT, value)

    def lte(self, column: str, value: Any) -> QueryPlan:
        return self.where(column, FilterOp.LTE, value)

    def like(self, column: str, pattern: str) -> QueryPlan:
        return self.where(column, FilterOp.LIKE, pattern)

    def ilike(self, column: str, pattern: str) -> QueryPlan:
        return self.where(column, FilterOp.ILIKE, pattern)

    def in_(self, column: str, values: Iterable[Any]) -> QueryPlan:
        return self.where(column, FilterOp.IN, tuple(values))

    def match(self, query: Mapping[str, Any]) -> QueryPlan:
        """Append one eq predicate per mapping entry."""
        plan = self
        for column, value in query.items():
            plan = plan.eq(column, value)
        return plan

    def order(self, column: str, ascending: bool = True) -> QueryPlan:
        return replace(self, ordering=Ordering(column, ascending))

    def limit(self, count: int) -> QueryPlan:
        if count < 0:
            raise ValueError(f"limit must be non-negative, got {count}")
        return replace(self, limit_count=count)

    def range(self, start: int, end: int) -> QueryPlan:
        """Inclusive slice ``[start, end]`` of the ordered result."""
        return replace(self, range_bounds=(start, end))

    def match_rows(self, rows: Iterable[Row]) -> List[Row]:
        """Rows satisfying the filters; ordering and pagination ignored."""
        return apply_filters(rows, self.filters)

    def resolve(self, rows: Iterable[Row]) -> List[Row]:
        """Filter, then order, then paginate."""
        result = apply_filters(rows, self.filters)
        result = apply_ordering(result, self.ordering)
        return apply_pagination(result, self.limit_count, self.range_bounds)
