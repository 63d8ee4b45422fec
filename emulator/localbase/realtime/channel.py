"""
Realtime channels.

A channel is a named group of table-change subscriptions or broadcast
listeners. Table-change listeners accumulate locally through on() and
take effect when subscribe() publishes them to the event bus.

Lifecycle:
    CLOSED --subscribe()--> SUBSCRIBED --unsubscribe()--> CLOSED
    CLOSED --subscribe() on a destroyed bus--> ERROR

Invariants:
    - on() has no effect on dispatch until subscribe(); once subscribed,
      further on() calls go live immediately
    - subscribe() confirms after the configured delay; callers must await
      it before relying on the SUBSCRIBED status
    - unsubscribe() is idempotent and reports CLOSED at most once
    - Broadcast listeners are live as soon as on_broadcast() returns
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ChannelError
from ..ids import delay
from .bus import EventBus
from .events import (
    BroadcastCallback,
    ChannelStatus,
    EventType,
    RealtimeCallback,
    StatusCallback,
    Subscription,
    SubscriptionFilter,
)

logger = logging.getLogger(__name__)


class RealtimeChannel:
    """Channel builder bound to an event bus.

    Example:
        >>> channel = client.channel("todos-feed")
        >>> channel.on("UPDATE", table="todos", callback=handle_update)
        >>> await channel.subscribe(lambda status: print(status))
        >>> ...
        >>> await channel.unsubscribe()
    """

    def __init__(self, name: str, bus: EventBus, confirm_delay_ms: int = 0) -> None:
        """Initialize the channel.

        Args:
            name: Channel name, the registry key on the bus
            bus: Event bus to publish into
            confirm_delay_ms: Simulated subscribe confirmation latency
        """
        self.name = name
        self.bus = bus
        self.confirm_delay_ms = confirm_delay_ms
        self._subscriptions: List[Subscription] = []
        self._broadcast_listeners: List[Tuple[str, BroadcastCallback]] = []
        self._status = ChannelStatus.CLOSED
        self._status_callback: Optional[StatusCallback] = None
        self._published = False

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def is_subscribed(self) -> bool:
        return self._status == ChannelStatus.SUBSCRIBED

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def on(
        self,
        event: EventType | str,
        table: str,
        callback: RealtimeCallback,
        filter: Optional[str | SubscriptionFilter] = None,
    ) -> RealtimeChannel:
        """Register a table-change listener.

        Args:
            event: INSERT, UPDATE, DELETE or "*"
            table: Table to watch
            callback: Called with a RealtimePayload
            filter: Optional ``column=eq.value`` expression or SubscriptionFilter

        Returns:
            This channel, for chaining

        Raises:
            ValueError: If the event type or filter expression is invalid
        """
        if isinstance(filter, str):
            filter = SubscriptionFilter.parse(filter)

        sub = Subscription(
            channel=self.name,
            table=table,
            event=EventType.parse(event),
            callback=callback,
            filter=filter,
        )
        self._subscriptions.append(sub)
        if self._published and self.bus.is_registered(self.name):
            self.bus.register(self.name, self._subscriptions)

        logger.debug(
            "Registered listener",
            extra={"channel": self.name, "table": table, "event": sub.event.value},
        )
        return self

    def on_broadcast(self, event: str, callback: BroadcastCallback) -> RealtimeChannel:
        """Listen for broadcast messages named ``event`` on this channel.

        Raises:
            ChannelError: If the bus has been destroyed
        """
        self.bus.add_broadcast_listener(self.name, event, callback)
        self._broadcast_listeners.append((event, callback))
        return self

    async def send(self, event: str, payload: Dict[str, Any]) -> int:
        """Broadcast a message to listeners registered right now.

        Returns:
            Number of listeners reached
        """
        return self.bus.broadcast(self.name, event, payload)

    async def subscribe(self, callback: Optional[StatusCallback] = None) -> RealtimeChannel:
        """Publish accumulated listeners and wait for confirmation.

        Args:
            callback: Status callback, called with SUBSCRIBED or ERROR now
                and with CLOSED on a later unsubscribe()

        Returns:
            This channel
        """
        self._status_callback = callback

        try:
            self.bus.register(self.name, self._subscriptions)
        except ChannelError as e:
            logger.warning(f"Subscribe failed: {e}", extra={"channel": self.name})
            self._set_status(ChannelStatus.ERROR)
            return self

        self._published = True
        logger.debug("Subscribed to channel", extra={"channel": self.name})

        await delay(self.confirm_delay_ms)

        # Unsubscribed (or bus destroyed) while waiting for confirmation
        if not self.bus.is_registered(self.name):
            return self

        self._set_status(ChannelStatus.SUBSCRIBED)
        return self

    async def unsubscribe(self) -> str:
        """Remove this channel from the bus. Idempotent.

        Returns:
            "ok"
        """
        self.bus.unregister(self.name)
        self._published = False
        for event, callback in self._broadcast_listeners:
            self.bus.remove_broadcast_listener(self.name, event, callback)
        self._broadcast_listeners.clear()

        if self._status != ChannelStatus.CLOSED:
            self._set_status(ChannelStatus.CLOSED)
            logger.debug("Unsubscribed from channel", extra={"channel": self.name})
        return "ok"

    def _set_status(self, status: ChannelStatus) -> None:
        self._status = status
        if self._status_callback is None:
            return
        try:
            self._status_callback(status)
        except Exception as e:
            logger.error(
                f"Channel status callback failed: {e}",
                extra={"channel": self.name, "status": status.value},
                exc_info=True,
            )


class RealtimeClient:
    """Factory and bookkeeping for channels on one bus."""

    def __init__(self, bus: EventBus, confirm_delay_ms: int = 0) -> None:
        self.bus = bus
        self.confirm_delay_ms = confirm_delay_ms
        self._channels: List[RealtimeChannel] = []

    def channel(self, name: str) -> RealtimeChannel:
        channel = RealtimeChannel(name, self.bus, confirm_delay_ms=self.confirm_delay_ms)
        self._channels.append(channel)
        return channel

    def get_channels(self) -> List[RealtimeChannel]:
        return list(self._channels)

    async def remove_channel(self, channel: RealtimeChannel) -> str:
        result = await channel.unsubscribe()
        if channel in self._channels:
            self._channels.remove(channel)
        return result

    async def remove_all_channels(self) -> List[str]:
        """Unsubscribe the channels created here. Other clients on the bus keep theirs."""
        results = [await channel.unsubscribe() for channel in self._channels]
        self._channels.clear()
        logger.debug("Removed all channels")
        return results
