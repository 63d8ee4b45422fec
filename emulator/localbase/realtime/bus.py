"""
Event bus for LocalBase realtime.

The bus is the registry every channel publishes into and every change
notification is dispatched through. It replaces a process-wide
subscription map: create one per client (or per test) and inject it.

Registries:
    - channel name -> table-change subscriptions (set on subscribe)
    - channel name -> event name -> broadcast listeners

Invariants:
    - Dispatch is synchronous and reaches every matching subscription on
      every channel
    - A listener that raises is logged and skipped; delivery continues
    - After destroy() nothing can register and dispatch delivers nothing

How to change safely:
    - Never hold a lock across callbacks; listeners may re-enter the bus
    - Iterate over copies so listeners can unsubscribe during delivery
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

from ..errors import ChannelError
from ..state import Row
from .events import (
    BroadcastCallback,
    EventType,
    RealtimePayload,
    Subscription,
)

logger = logging.getLogger(__name__)


class EventBus:
    """Subscription registry with synchronous dispatch.

    Example:
        >>> bus = EventBus.create()
        >>> bus.register("todos-feed", [subscription])
        >>> bus.dispatch("todos", EventType.INSERT, {"id": "t1"})
        1
        >>> bus.destroy()
    """

    def __init__(self) -> None:
        self._channels: Dict[str, List[Subscription]] = {}
        self._broadcast: Dict[str, Dict[str, List[BroadcastCallback]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._open = False

    @classmethod
    def create(cls) -> EventBus:
        """Create an open bus."""
        bus = cls()
        bus._open = True
        logger.debug("EventBus created")
        return bus

    def destroy(self) -> None:
        """Drop every registration and refuse new ones."""
        self._open = False
        self._channels.clear()
        self._broadcast.clear()
        logger.debug("EventBus destroyed")

    @property
    def is_open(self) -> bool:
        return self._open

    # Table-change subscriptions

    def register(self, channel: str, subscriptions: Sequence[Subscription]) -> None:
        """Publish a channel's subscriptions, replacing any previous entry.

        Raises:
            ChannelError: If the bus has been destroyed
        """
        if not self._open:
            raise ChannelError("Event bus is closed", channel=channel)
        self._channels[channel] = list(subscriptions)
        logger.debug(
            "Channel registered",
            extra={"channel": channel, "subscriptions": len(subscriptions)},
        )

    def unregister(self, channel: str) -> bool:
        """Remove a channel's entry. Returns whether one existed."""
        return self._channels.pop(channel, None) is not None

    def is_registered(self, channel: str) -> bool:
        return channel in self._channels

    def clear(self) -> None:
        """Remove every channel registration."""
        self._channels.clear()

    def reset(self) -> None:
        """Drop table-change registrations and broadcast listeners. The bus stays open."""
        self._channels.clear()
        self._broadcast.clear()

    def channel_names(self) -> List[str]:
        return list(self._channels)

    def subscriptions(self) -> List[Dict[str, str]]:
        """Flat listing of active subscriptions (introspection helper)."""
        return [
            {"channel": channel, "table": sub.table, "event": sub.event.value}
            for channel, subs in self._channels.items()
            for sub in subs
        ]

    def dispatch(
        self,
        table: str,
        event_type: EventType | str,
        new: Optional[Row],
        old: Optional[Row] = None,
    ) -> int:
        """Deliver a change notification to all matching subscriptions.

        Args:
            table: Table the change happened in
            event_type: INSERT, UPDATE or DELETE
            new: Row after the change (None for deletes)
            old: Row before the change, if known

        Returns:
            Number of callbacks invoked
        """
        event_type = EventType.parse(event_type)
        payload = RealtimePayload(event_type=event_type, new=new, old=old, table=table)
        delivered = 0

        for channel, subs in list(self._channels.items()):
            for sub in list(subs):
                if not sub.accepts(table, event_type, new, old):
                    continue
                delivered += 1
                try:
                    sub.callback(payload)
                except Exception as e:
                    logger.error(
                        f"Realtime listener failed: {e}",
                        extra={"channel": channel, "table": table, "event": event_type.value},
                        exc_info=True,
                    )

        logger.debug(
            "Dispatched realtime event",
            extra={"table": table, "event": event_type.value, "delivered": delivered},
        )
        return delivered

    # Broadcast listeners

    def add_broadcast_listener(
        self,
        channel: str,
        event: str,
        callback: BroadcastCallback,
    ) -> None:
        """Register a listener for broadcast messages.

        Raises:
            ChannelError: If the bus has been destroyed
        """
        if not self._open:
            raise ChannelError("Event bus is closed", channel=channel)
        self._broadcast[channel][event].append(callback)

    def remove_broadcast_listener(
        self,
        channel: str,
        event: str,
        callback: BroadcastCallback,
    ) -> None:
        listeners = self._broadcast.get(channel, {}).get(event)
        if listeners and callback in listeners:
            listeners.remove(callback)

    def broadcast(self, channel: str, event: str, payload: Dict[str, Any]) -> int:
        """Invoke every listener currently registered for ``event`` on ``channel``.

        Returns:
            Number of listeners invoked
        """
        listeners = list(self._broadcast.get(channel, {}).get(event, ()))
        for callback in listeners:
            try:
                callback(payload)
            except Exception as e:
                logger.error(
                    f"Broadcast listener failed: {e}",
                    extra={"channel": channel, "event": event},
                    exc_info=True,
                )
        return len(listeners)
