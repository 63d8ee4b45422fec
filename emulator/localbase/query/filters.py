"""
Row predicates, ordering and pagination.

Pure functions with no I/O. A query plan is resolved by running these in
a fixed order: filter, then order, then paginate.

Comparison semantics:
- eq/neq are strict: True never equals 1
- gt/gte/lt/lte between incomparable values (str vs int, None vs
  anything) do not match instead of raising
- like/ilike search the stringified value; ``%`` matches zero or more
  characters, everything else is literal, the match is unanchored
- in tests membership in a value list
- a missing column reads as None
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key, lru_cache
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..state import Row
from ..values import as_text, strict_equals


class FilterOp(str, Enum):
    """Supported filter operators."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"


@lru_cache(maxsize=256)
def like_pattern(pattern: str, case_insensitive: bool) -> re.Pattern[str]:
    """Compile a ``%`` wildcard pattern to a regular expression."""
    body = ".*".join(re.escape(part) for part in pattern.split("%"))
    flags = re.DOTALL
    if case_insensitive:
        flags |= re.IGNORECASE
    return re.compile(body, flags)


def _ordered(value: Any, operand: Any, op: FilterOp) -> bool:
    try:
        if op == FilterOp.GT:
            return value > operand
        if op == FilterOp.GTE:
            return value >= operand
        if op == FilterOp.LT:
            return value < operand
        return value <= operand
    except TypeError:
        return False


@dataclass(frozen=True)
class Filter:
    """A single predicate: ``row[column] <op> operand``."""

    column: str
    op: FilterOp
    operand: Any

    def matches(self, row: Row) -> bool:
        value = row.get(self.column)

        if self.op == FilterOp.EQ:
            return strict_equals(value, self.operand)
        if self.op == FilterOp.NEQ:
            return not strict_equals(value, self.operand)
        if self.op in (FilterOp.GT, FilterOp.GTE, FilterOp.LT, FilterOp.LTE):
            return _ordered(value, self.operand, self.op)
        if self.op in (FilterOp.LIKE, FilterOp.ILIKE):
            if value is None or not isinstance(self.operand, str):
                return False
            regex = like_pattern(self.operand, self.op == FilterOp.ILIKE)
            return regex.search(as_text(value)) is not None
        if self.op == FilterOp.IN:
            try:
                return any(strict_equals(value, candidate) for candidate in self.operand)
            except TypeError:
                return False
        return True


@dataclass(frozen=True)
class Ordering:
    """Sort key for a query."""

    column: str
    ascending: bool = True


def apply_filters(rows: Iterable[Row], filters: Sequence[Filter]) -> List[Row]:
    """Keep rows satisfying every filter (logical AND)."""
    return [row for row in rows if all(f.matches(row) for f in filters)]


def compare_values(left: Any, right: Any) -> int:
    """Three-way compare with ``<``/``>``; incomparable values are equal."""
    try:
        if left < right:
            return -1
        if left > right:
            return 1
    except TypeError:
        pass
    return 0


def apply_ordering(rows: List[Row], ordering: Optional[Ordering]) -> List[Row]:
    """Stable sort by the ordering column; equal keys keep input order."""
    if ordering is None:
        return rows

    sign = 1 if ordering.ascending else -1
    column = ordering.column

    def cmp(a: Row, b: Row) -> int:
        return sign * compare_values(a.get(column), b.get(column))

    return sorted(rows, key=cmp_to_key(cmp))


def apply_pagination(
    rows: List[Row],
    limit: Optional[int],
    range_bounds: Optional[Tuple[int, int]],
) -> List[Row]:
    """Slice rows by range or limit.

    A range wins over a limit when both are set.
    """
    if range_bounds is not None:
        start, end = range_bounds
        return rows[start:end + 1]
    if limit is not None:
        return rows[:limit]
    return rows
