"""
Realtime event types, filters and payloads.

Pure value types shared by the event bus and channels.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..state import Row
from ..values import as_text, strict_equals


class EventType(str, Enum):
    """Table change event types. ALL matches any of the others."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ALL = "*"

    @classmethod
    def parse(cls, value: "EventType | str") -> EventType:
        """Accept an EventType or its name in any case.

        Raises:
            ValueError: If the value is not a known event type
        """
        if isinstance(value, EventType):
            return value
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Unknown realtime event type: {value!r}") from None


class ChannelStatus(str, Enum):
    """Values passed to subscribe/unsubscribe status callbacks."""

    SUBSCRIBED = "SUBSCRIBED"
    CLOSED = "CLOSED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class SubscriptionFilter:
    """Single-column equality constraint on a subscription.

    Built once at registration. A string ``value`` (as parsed from an
    expression) matches a row value whose text form is equal, so
    ``user_id=eq.42`` matches both ``42`` and ``"42"``.
    """

    column: str
    value: Any

    @classmethod
    def parse(cls, expression: str) -> SubscriptionFilter:
        """Parse ``column=eq.value``.

        Raises:
            ValueError: If the expression is malformed or not an equality
        """
        column, sep, rest = expression.partition("=")
        operator, dot, value = rest.partition(".")
        column = column.strip()
        if not sep or not dot or not column:
            raise ValueError(f"Malformed realtime filter: {expression!r}")
        if operator.strip() != "eq":
            raise ValueError(
                f"Unsupported realtime filter operator {operator.strip()!r}; only 'eq' is supported"
            )
        return cls(column=column, value=value.strip())

    def matches(self, row: Optional[Row]) -> bool:
        if row is None or self.column not in row:
            return False
        actual = row[self.column]
        if isinstance(self.value, str) and actual is not None and not isinstance(actual, str):
            return as_text(actual) == self.value
        return strict_equals(actual, self.value)


@dataclass(frozen=True)
class RealtimePayload:
    """Change notification delivered to subscription callbacks."""

    event_type: EventType
    new: Optional[Row]
    old: Optional[Row]
    table: str
    schema: str = "public"

    def to_dict(self) -> Dict[str, Any]:
        """Wire-shaped dictionary, as the hosted platform sends it."""
        return {
            "eventType": self.event_type.value,
            "new": self.new,
            "old": self.old,
            "schema": self.schema,
            "table": self.table,
        }


RealtimeCallback = Callable[[RealtimePayload], Any]
BroadcastCallback = Callable[[Dict[str, Any]], Any]
StatusCallback = Callable[[ChannelStatus], Any]


@dataclass(frozen=True)
class Subscription:
    """A table-change listener registered on a channel."""

    channel: str
    table: str
    event: EventType
    callback: RealtimeCallback
    filter: Optional[SubscriptionFilter] = None

    def accepts(
        self,
        table: str,
        event_type: EventType,
        new: Optional[Row],
        old: Optional[Row],
    ) -> bool:
        """Whether a change should be delivered to this subscription.

        The filter is checked against the new row, or the old row for
        deletes where there is no new row.
        """
        if self.table != table:
            return False
        if self.event != EventType.ALL and self.event != event_type:
            return False
        if self.filter is None:
            return True
        return self.filter.matches(new if new is not None else old)
