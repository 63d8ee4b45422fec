"""
Integration tests for LocalBaseClient.

Tests cover:
- Insert / select / update / delete flow on a todos table
- Realtime notifications driven by mutations
- RPC handlers
- Simulated errors and test helpers
- Hydration across a simulated restart (in-memory and SQLite)
"""

import asyncio
import tempfile

import pytest

from emulator.localbase import (
    ChannelStatus,
    EventType,
    LocalBaseClient,
    LocalBaseHelpers,
    RpcNotImplementedError,
    Settings,
    SharedState,
    SimulatedError,
    StorageBackend,
    create_client,
)
from emulator.localbase.storage.memory import InMemoryKeyValueStore


class TestTodosFlow:
    """End-to-end table operations through the client."""

    @pytest.mark.asyncio
    async def test_insert_select_delete(self, client):
        todos = client.from_("todos")

        inserted = await todos.insert({"title": "Buy milk", "completed": False})
        assert inserted.error is None
        todo_id = inserted.data["id"]

        listed = await todos.select().eq("completed", False).execute()
        assert [r["title"] for r in listed.data] == ["Buy milk"]

        deleted = await todos.delete().eq("id", todo_id).execute()
        assert [r["id"] for r in deleted.data] == [todo_id]

        after = await todos.select().execute()
        assert after.data == []
        assert after.count == 0

    @pytest.mark.asyncio
    async def test_update_round_trip_timestamps(self, client):
        todos = client.table("todos")
        inserted = await todos.insert({"title": "Draft"})
        created_at = inserted.data["created_at"]

        updated = await todos.update({"title": "Final"}).eq("id", inserted.data["id"]).execute()
        fetched = await todos.select().eq("id", inserted.data["id"]).execute_single()

        assert updated.data[0]["title"] == "Final"
        assert fetched.data["title"] == "Final"
        assert fetched.data["created_at"] == created_at
        assert fetched.data["updated_at"] >= created_at

    @pytest.mark.asyncio
    async def test_clients_sharing_state_see_each_other(self, settings, state):
        writer = LocalBaseClient(settings=settings, state=state, store=InMemoryKeyValueStore())
        reader = LocalBaseClient(settings=settings, state=state, store=InMemoryKeyValueStore())

        await writer.from_("notes").insert({"id": "n1", "body": "hi"})
        result = await reader.from_("notes").select().execute_single()

        assert result.data["body"] == "hi"

    @pytest.mark.asyncio
    async def test_read_sees_write_made_during_latency(self, state):
        """A read waiting on latency observes a write that lands meanwhile."""
        settings = Settings.for_tests(select_delay_ms=30, mutation_delay_ms=0)
        client = LocalBaseClient(settings=settings, state=state, store=InMemoryKeyValueStore())
        await client.initialize()

        read = asyncio.ensure_future(client.from_("todos").select().execute())
        await client.from_("todos").insert({"id": "t1"})
        result = await read

        assert [r["id"] for r in result.data] == ["t1"]


class TestRealtimeFlow:
    """Mutations delivering realtime notifications."""

    @pytest.mark.asyncio
    async def test_update_listener_called_exactly_once(self, client):
        received = []
        statuses = []
        await client.from_("todos").insert({"id": "t1", "title": "a", "user_id": "u1"})
        channel = client.channel("todo-updates").on("UPDATE", "todos", received.append, filter="user_id=eq.u1")
        await channel.subscribe(statuses.append)

        await client.from_("todos").update({"title": "b"}).eq("id", "t1").execute()

        assert statuses == [ChannelStatus.SUBSCRIBED]
        assert len(received) == 1
        payload = received[0]
        assert payload.event_type == EventType.UPDATE
        assert payload.table == "todos"
        assert payload.new["title"] == "b"
        assert payload.old["title"] == "a"

    @pytest.mark.asyncio
    async def test_other_tables_not_dispatched(self, client):
        received = []
        await client.channel("feed").on("*", "todos", received.append).subscribe()

        await client.from_("notes").insert({"title": "unrelated"})

        assert received == []

    @pytest.mark.asyncio
    async def test_filter_excludes_other_users(self, client):
        received = []
        await client.channel("mine").on("INSERT", "todos", received.append, filter="user_id=eq.u1").subscribe()

        await client.from_("todos").insert([{"user_id": "u1"}, {"user_id": "u2"}])

        assert [p.new["user_id"] for p in received] == ["u1"]

    @pytest.mark.asyncio
    async def test_delete_notification_carries_old_row(self, client):
        received = []
        await client.from_("todos").insert({"id": "t1", "user_id": "u1"})
        await client.channel("deletes").on("DELETE", "todos", received.append, filter="user_id=eq.u1").subscribe()

        await client.from_("todos").delete().eq("id", "t1").execute()

        assert len(received) == 1
        assert received[0].new is None
        assert received[0].old["id"] == "t1"

    @pytest.mark.asyncio
    async def test_failed_mutation_dispatches_nothing(self, client, helpers):
        received = []
        await client.channel("feed").on("*", "todos", received.append).subscribe()
        helpers.fail_next("todos", "insert")

        result = await client.from_("todos").insert({"title": "x"})

        assert isinstance(result.error, SimulatedError)
        assert received == []

    @pytest.mark.asyncio
    async def test_close_unsubscribes_channels(self, settings, state):
        statuses = []
        client = create_client(settings=settings, state=state, store=InMemoryKeyValueStore())
        async with client:
            await client.channel("feed").on("*", "todos", lambda p: None).subscribe(statuses.append)

        assert statuses == [ChannelStatus.SUBSCRIBED, ChannelStatus.CLOSED]
        assert not client.bus.is_open

    @pytest.mark.asyncio
    async def test_close_keeps_other_clients_channels_on_shared_bus(self, settings, state, bus):
        first = LocalBaseClient(settings=settings, state=state, store=InMemoryKeyValueStore(), bus=bus)
        second = LocalBaseClient(settings=settings, state=state, store=InMemoryKeyValueStore(), bus=bus)
        received = []
        await first.channel("first-feed").on("*", "todos", lambda p: None).subscribe()
        await second.channel("second-feed").on("INSERT", "todos", received.append).subscribe()

        await first.close()
        bus.dispatch("todos", "INSERT", {"id": "x"})

        assert bus.is_open
        assert bus.channel_names() == ["second-feed"]
        assert [p.new["id"] for p in received] == ["x"]


class TestRpc:
    """Tests for stored procedure calls."""

    @pytest.mark.asyncio
    async def test_registered_handler(self, client, helpers):
        async def get_stats(params):
            rows = await client.from_("todos").select().eq("user_id", params["user_id"]).execute()
            return {"total": rows.count}

        helpers.register_rpc_handler("get_stats", get_stats)
        await client.from_("todos").insert([{"user_id": "u1"}, {"user_id": "u1"}, {"user_id": "u2"}])

        result = await client.rpc("get_stats", {"user_id": "u1"})

        assert result.error is None
        assert result.data == {"total": 2}

    @pytest.mark.asyncio
    async def test_not_implemented(self, client):
        result = await client.rpc("missing_fn")

        assert result.data is None
        assert isinstance(result.error, RpcNotImplementedError)
        assert result.error.message == "RPC function 'missing_fn' not implemented in mock"

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_error(self, client, helpers):
        async def broken(params):
            raise RuntimeError("handler bug")

        helpers.register_rpc_handler("broken", broken)

        result = await client.rpc("broken")

        assert isinstance(result.error, RuntimeError)

    @pytest.mark.asyncio
    async def test_unregister(self, client, helpers):
        async def noop(params):
            return None

        helpers.register_rpc_handler("noop", noop)
        assert helpers.unregister_rpc_handler("noop")
        assert not helpers.unregister_rpc_handler("noop")

        result = await client.rpc("noop")
        assert isinstance(result.error, RpcNotImplementedError)


class TestHelpers:
    """Tests for LocalBaseHelpers."""

    @pytest.mark.asyncio
    async def test_seed_and_read(self, client, helpers, kv_store):
        seeded = await helpers.seed_table("todos", [{"id": "t1", "title": "Seeded"}, {"title": "No id"}])

        assert seeded[1]["id"].startswith("mock-id-")
        result = await client.from_("todos").select().execute()
        assert [r["title"] for r in result.data] == ["Seeded", "No id"]
        assert "mock.supabase.database" in kv_store.snapshot()

    @pytest.mark.asyncio
    async def test_reseed_replaces_rows(self, client, helpers):
        await helpers.seed_table("todos", [{"id": "old"}])

        await helpers.seed_table("todos", [{"id": "new"}])

        assert [r["id"] for r in helpers.get_table_data("todos")] == ["new"]
        result = await client.from_("todos").select().execute()
        assert [r["id"] for r in result.data] == ["new"]

    @pytest.mark.asyncio
    async def test_simulate_and_clear_error(self, client, helpers):
        error = SimulatedError("read failed")
        helpers.simulate_error("todos", "select", error)

        failed = await client.from_("todos").select().execute()
        helpers.simulate_error("todos", "select", None)
        recovered = await client.from_("todos").select().execute()

        assert failed.error is error
        assert recovered.error is None
        assert helpers.get_simulated_error("todos", "select") is None

    def test_simulate_unknown_operation(self, helpers):
        with pytest.raises(ValueError):
            helpers.simulate_error("todos", "truncate", SimulatedError("x"))

    @pytest.mark.asyncio
    async def test_trigger_realtime_event(self, client, helpers):
        received = []
        await client.channel("feed").on("INSERT", "todos", received.append).subscribe()

        delivered = helpers.trigger_realtime_event("todos", "INSERT", {"id": "manual"})

        assert delivered == 1
        assert received[0].new == {"id": "manual"}
        assert (await client.from_("todos").select().execute()).data == []

    @pytest.mark.asyncio
    async def test_realtime_subscription_listing(self, client, helpers):
        await client.channel("feed").on("UPDATE", "todos", lambda p: None).subscribe()

        assert helpers.get_realtime_subscriptions() == [{"channel": "feed", "table": "todos", "event": "UPDATE"}]
        helpers.clear_realtime_subscriptions()
        assert helpers.get_realtime_subscriptions() == []

    @pytest.mark.asyncio
    async def test_purge_user_rows(self, client, helpers):
        await helpers.seed_table("profiles", [{"id": "u1"}, {"id": "u2"}])
        await helpers.seed_table("todos", [{"id": "t1", "user_id": "u1"}, {"id": "t2", "user_id": "u2"}])

        removed = await helpers.purge_user_rows("u1")

        assert removed == 2
        assert [r["id"] for r in helpers.get_table_data("profiles")] == ["u2"]
        assert [r["id"] for r in helpers.get_table_data("todos")] == ["t2"]

    @pytest.mark.asyncio
    async def test_clear_all(self, client, helpers, kv_store):
        await client.from_("todos").insert({"id": "t1"})
        await client.channel("feed").on("*", "todos", lambda p: None).subscribe()
        pings = []
        client.channel("room").on_broadcast("ping", pings.append)

        await helpers.clear_all()

        assert await client.channel("room").send("ping", {"n": 1}) == 0
        assert pings == []
        assert helpers.get_table_data("todos") == []
        assert helpers.get_realtime_subscriptions() == []
        assert kv_store.snapshot() == {}
        result = await client.from_("todos").select().execute()
        assert result.data == []


class TestRestart:
    """Hydration of a new process from durable storage."""

    @pytest.mark.asyncio
    async def test_memory_store_restart(self, settings):
        store = InMemoryKeyValueStore()
        first = LocalBaseClient(settings=settings, state=SharedState(), store=store)
        await first.from_("todos").insert({"id": "t1", "title": "Persisted"})
        await first.close()

        second = LocalBaseClient(settings=settings, state=SharedState(), store=store)
        result = await second.from_("todos").select().eq("id", "t1").execute_single()

        assert result.data["title"] == "Persisted"

    @pytest.mark.asyncio
    async def test_sqlite_restart(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = Settings.for_tests(storage_backend=StorageBackend.SQLITE, data_dir=tmpdir)

            async with LocalBaseClient(settings=settings, state=SharedState()) as first:
                await first.from_("todos").insert([{"id": "t1"}, {"id": "t2"}])

            async with LocalBaseClient(settings=settings, state=SharedState()) as second:
                result = await second.from_("todos").select().order("id", ascending=False).execute()

            assert [r["id"] for r in result.data] == ["t2", "t1"]

    @pytest.mark.asyncio
    async def test_hydration_keeps_helpers_consistent(self, settings):
        store = InMemoryKeyValueStore()
        writer = LocalBaseClient(settings=settings, state=SharedState(), store=store)
        await writer.from_("todos").insert({"id": "old"})
        await writer.from_("notes").insert({"id": "n1"})

        fresh = LocalBaseClient(settings=settings, state=SharedState(), store=store)
        await LocalBaseHelpers(fresh).seed_table("todos", [{"id": "new"}])

        reopened = LocalBaseClient(settings=settings, state=SharedState(), store=store)
        helpers = LocalBaseHelpers(reopened)
        await reopened.initialize()
        assert [r["id"] for r in helpers.get_table_data("todos")] == ["new"]
        assert [r["id"] for r in helpers.get_table_data("notes")] == ["n1"]
