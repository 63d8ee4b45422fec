"""
Query and mutation engine for LocalBase.

Chainable reads (filters, ordering, pagination) and writes (insert,
upsert, update, delete) over the in-memory table store.

Invariants:
    - Plans are immutable; builder methods return new values
    - Resolution order is always filter, order, paginate
    - Every mutation persists the full database and dispatches changes
"""

from .builder import MutationKind, MutationQuery, SelectQuery
from .engine import QueryEngine
from .filters import (
    Filter,
    FilterOp,
    Ordering,
    apply_filters,
    apply_ordering,
    apply_pagination,
)
from .plan import QueryPlan
from .result import QueryResult
from .table import TableQuery

__all__ = [
    # Engine
    "QueryEngine",
    "TableQuery",
    # Builders and plans
    "SelectQuery",
    "MutationQuery",
    "MutationKind",
    "QueryPlan",
    "QueryResult",
    # Predicates
    "Filter",
    "FilterOp",
    "Ordering",
    "apply_filters",
    "apply_ordering",
    "apply_pagination",
]
