"""
Error types for LocalBase.

This module defines the errors surfaced by the emulator:
- LocalBaseError: Base exception
- NotFoundError: Zero rows where exactly one was required
- MultipleRowsError: More than one row where at most one was allowed
- ValidationError: Malformed input
- RpcNotImplementedError: Stored procedure with no registered handler
- SimulatedError: Error injected through the test helpers
- ChannelError: Realtime registration on a destroyed bus

Query and mutation errors are never raised across the query boundary.
They are returned in the ``error`` field of a QueryResult so callers
check-and-branch instead of catching.

Invariants:
    - All errors inherit from LocalBaseError
    - Every error carries a stable ``code`` for programmatic handling
    - Messages match the hosted platform's wording where one exists
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LocalBaseError(Exception):
    """Base exception for all LocalBase errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "LOCALBASE_ERROR"
        self.details = details or {}


class NotFoundError(LocalBaseError):
    """No row matched a query that required exactly one."""

    def __init__(self, table: str, message: str = "No rows found") -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={"table": table},
        )
        self.table = table


class MultipleRowsError(LocalBaseError):
    """More than one row matched a query that allowed at most one.

    Attributes:
        table: Table that was queried
        matched: Number of rows that matched the filters
    """

    def __init__(self, table: str, matched: int) -> None:
        super().__init__(
            "Multiple rows found",
            code="MULTIPLE_ROWS",
            details={"table": table, "matched": matched},
        )
        self.table = table
        self.matched = matched


class ValidationError(LocalBaseError):
    """Input rejected before reaching the table.

    Raised when:
    - A row is not a mapping
    - A list of rows contains a non-mapping entry
    """

    def __init__(self, message: str, field_name: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name},
        )
        self.field_name = field_name


class RpcNotImplementedError(LocalBaseError):
    """No handler registered for a stored procedure name."""

    def __init__(self, function_name: str) -> None:
        super().__init__(
            f"RPC function '{function_name}' not implemented in mock",
            code="NOT_IMPLEMENTED",
            details={"function": function_name},
        )
        self.function_name = function_name


class SimulatedError(LocalBaseError):
    """Error injected by a test to exercise failure branches.

    Attributes:
        table: Table the error is bound to
        operation: Operation the error is bound to (select, insert, update, delete)
    """

    def __init__(self, message: str, table: str = "", operation: str = "") -> None:
        super().__init__(
            message,
            code="SIMULATED",
            details={"table": table, "operation": operation},
        )
        self.table = table
        self.operation = operation


class ChannelError(LocalBaseError):
    """Realtime channel could not be registered.

    Raised when:
    - The event bus has been destroyed
    """

    def __init__(self, message: str, channel: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CHANNEL_ERROR",
            details={"channel": channel},
        )
        self.channel = channel
