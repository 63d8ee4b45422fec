"""
Shared fixtures for the LocalBase test suite.

Every fixture builds isolated objects: a fresh SharedState, a fresh bus
and an in-memory store, with zero simulated latency.
"""

import pytest

from emulator.localbase.client import LocalBaseClient
from emulator.localbase.config import Settings
from emulator.localbase.persistence import PersistenceAdapter
from emulator.localbase.query.engine import QueryEngine
from emulator.localbase.realtime.bus import EventBus
from emulator.localbase.state import SharedState
from emulator.localbase.storage.memory import InMemoryKeyValueStore
from emulator.localbase.testing import LocalBaseHelpers


@pytest.fixture
def settings():
    """Zero-latency, in-memory settings."""
    return Settings.for_tests()


@pytest.fixture
def state():
    """Fresh shared state."""
    return SharedState()


@pytest.fixture
def kv_store():
    """In-memory key-value store (not yet connected)."""
    return InMemoryKeyValueStore()


@pytest.fixture
def bus():
    """Open event bus, destroyed after the test."""
    bus = EventBus.create()
    yield bus
    bus.destroy()


@pytest.fixture
def persistence(kv_store, state):
    return PersistenceAdapter(kv_store, state)


@pytest.fixture
def engine(state, persistence, bus, settings):
    """Query engine wired to the test state, store and bus."""
    return QueryEngine(state, persistence, bus, settings)


@pytest.fixture
def client(settings, state, kv_store, bus):
    """Client over the test state, store and bus."""
    return LocalBaseClient(settings=settings, state=state, store=kv_store, bus=bus)


@pytest.fixture
def helpers(client):
    return LocalBaseHelpers(client)
