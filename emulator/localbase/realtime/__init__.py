"""
Realtime change notifications for LocalBase.

Consumers observe inserts, updates and deletes without polling by
registering table-change listeners on named channels, and exchange
ephemeral messages through broadcast listeners.

Invariants:
    - Every successful insert/update/delete dispatches through the bus
    - Manual dispatch works independently of any mutation
    - Buses are explicit objects; tests can run isolated buses side by side
"""

from .bus import EventBus
from .channel import RealtimeChannel, RealtimeClient
from .events import (
    ChannelStatus,
    EventType,
    RealtimePayload,
    Subscription,
    SubscriptionFilter,
)

__all__ = [
    "EventBus",
    "RealtimeChannel",
    "RealtimeClient",
    "ChannelStatus",
    "EventType",
    "RealtimePayload",
    "Subscription",
    "SubscriptionFilter",
]
