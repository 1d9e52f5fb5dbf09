"""
Shared fixtures: both store backends, a controllable clock and an API client.
"""

import fakeredis
import pytest
from fastapi.testclient import TestClient

from pastestore.clock import FixedClock
from pastestore.config import Settings
from pastestore.database import MemoryPasteStore, RedisPasteStore
from pastestore.main import create_app
from pastestore.service import PasteService


@pytest.fixture
def redis_client():
    """An in-process Redis with WATCH/MULTI support."""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.close()


@pytest.fixture
def memory_store():
    return MemoryPasteStore()


@pytest.fixture
def redis_store(redis_client):
    return RedisPasteStore(redis_client, key_prefix="test:", max_retries=100)


@pytest.fixture(params=["memory", "redis"])
def store(request):
    """Every behavioural store test runs against both backends."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def clock():
    return FixedClock(1000)


@pytest.fixture
def config():
    return Settings(TEST_MODE=True, APP_DOMAIN="http://paste.test", LIST_DEFAULT_LIMIT=100)


@pytest.fixture
def service(store, clock, config):
    return PasteService(store, clock=clock, config=config)


@pytest.fixture
def app(memory_store, clock, config):
    return create_app(store=memory_store, clock=clock, config=config)


@pytest.fixture
def client(app):
    return TestClient(app)
