"""
LocalBase client: the application-facing entry point.

Wires the shared state, durable store, persistence adapter, event bus,
query engine and realtime client into one object with the hosted SDK's
shape:

    async with create_client() as client:
        await client.from_("todos").insert({"title": "Buy milk"})
        result = await client.from_("todos").select().eq("completed", False).execute()
        await client.channel("feed").on("INSERT", "todos", handle).subscribe()
        await client.rpc("get_stats", {"user_id": "u1"})

Invariants:
    - Query, mutation and RPC failures come back in QueryResult.error
    - Clients sharing a SharedState see each other's rows
    - close() destroys the bus only if this client created it
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .config import Settings, get_settings
from .errors import RpcNotImplementedError
from .ids import delay
from .persistence import PersistenceAdapter
from .query.engine import QueryEngine
from .query.result import QueryResult
from .query.table import TableQuery
from .realtime.bus import EventBus
from .realtime.channel import RealtimeChannel, RealtimeClient
from .state import SharedState, get_shared_state
from .storage.base import KeyValueStore, create_kv_store

logger = logging.getLogger(__name__)


class LocalBaseClient:
    """In-process stand-in for the hosted backend client.

    Attributes:
        settings: Latency, storage and logging configuration
        state: Shared state holding tables and RPC handlers
        store: Durable key-value store
        persistence: Adapter mirroring state into the store
        bus: Event bus for change notifications
        engine: Query engine
        realtime: Channel factory bound to the bus
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        state: Optional[SharedState] = None,
        store: Optional[KeyValueStore] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Configuration (defaults to the process settings)
            state: Shared state (defaults to the process-wide state)
            store: Durable store (defaults to one built from settings)
            bus: Event bus (defaults to a new bus owned by this client)
        """
        self.settings = settings or get_settings()
        self.state = state if state is not None else get_shared_state()
        self.store = store if store is not None else create_kv_store(self.settings)
        self._owns_bus = bus is None
        self.bus = bus if bus is not None else EventBus.create()
        self.persistence = PersistenceAdapter(self.store, self.state)
        self.engine = QueryEngine(self.state, self.persistence, self.bus, self.settings)
        self.realtime = RealtimeClient(self.bus, self.settings.subscribe_confirm_ms)

    async def initialize(self) -> None:
        """Open the store and hydrate the state. Safe to call repeatedly.

        Raises:
            ValueError: If the settings are inconsistent
        """
        self.settings.validate_config()
        await self.persistence.ensure_ready()
        logger.info(
            "LocalBase client ready",
            extra={
                "backend": self.settings.storage_backend.value,
                "tables": len(self.state.database),
            },
        )

    async def close(self) -> None:
        """Unsubscribe this client's channels and release the store."""
        await self.realtime.remove_all_channels()
        if self._owns_bus:
            self.bus.destroy()
        if self.store.is_connected:
            await self.store.close()

    async def __aenter__(self) -> LocalBaseClient:
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def from_(self, table: str) -> TableQuery:
        """Get a handle for one table, creating it on first reference."""
        return self.engine.from_(table)

    table = from_

    def channel(self, name: str) -> RealtimeChannel:
        """Create a realtime channel."""
        return self.realtime.channel(name)

    def get_channels(self) -> List[RealtimeChannel]:
        return self.realtime.get_channels()

    async def remove_channel(self, channel: RealtimeChannel) -> str:
        return await self.realtime.remove_channel(channel)

    async def remove_all_channels(self) -> List[str]:
        return await self.realtime.remove_all_channels()

    async def rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> QueryResult:
        """Call a registered stored procedure handler.

        A handler may return a QueryResult, which is passed through, or any
        other value, which becomes ``data``. Exceptions from the handler
        are returned as the result's error.

        Returns:
            Handler result, or a RpcNotImplementedError result
        """
        await delay(self.settings.rpc_delay_ms)

        handler = self.state.rpc_handlers.get(function_name)
        if handler is None:
            logger.warning(
                "RPC function not implemented",
                extra={"function": function_name},
            )
            return QueryResult.failure(RpcNotImplementedError(function_name))

        try:
            value = await handler(params)
        except Exception as e:
            logger.error(
                f"RPC handler failed: {e}",
                extra={"function": function_name},
                exc_info=True,
            )
            return QueryResult.failure(e)

        if isinstance(value, QueryResult):
            return value
        return QueryResult(data=value)


def create_client(
    settings: Optional[Settings] = None,
    state: Optional[SharedState] = None,
    store: Optional[KeyValueStore] = None,
    bus: Optional[EventBus] = None,
) -> LocalBaseClient:
    """Create a client.

    Storage is opened lazily on the first operation, or eagerly via
    ``await client.initialize()`` / ``async with``.
    """
    return LocalBaseClient(settings=settings, state=state, store=store, bus=bus)
