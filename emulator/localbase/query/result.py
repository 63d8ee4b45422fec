"""
Uniform result shape for every resolved query or mutation.

Application code branches on ``error`` being set, so errors travel here
instead of being raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class QueryResult:
    """Result of a query, mutation or RPC call.

    Attributes:
        data: Rows, a single row, an RPC return value, or None
        error: Error if the operation failed, otherwise None
        count: Number of rows, for collection reads only
    """

    data: Any = None
    error: Optional[Exception] = None
    count: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: Exception) -> QueryResult:
        return cls(data=None, error=error)
