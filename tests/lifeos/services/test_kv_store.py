"""
Tests for the key-value store backends.

Covers:
- InMemoryKeyValueStore basics
- SQLKeyValueStore on in-memory SQLite (insert, overwrite, delete, errors)
- RedisKeyValueStore over a mocked async Redis client
- RedisService connection handling and LifeOSJSONEncoder
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as redis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from lifeos.config.constants import Pillar
from lifeos.lib.exceptions import StoreError, StoreUnavailableError
from lifeos.services.event_store import EventStore
from lifeos.services.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    SQLKeyValueStore,
)
from lifeos.services.redis_service import LifeOSJSONEncoder, RedisService
from lifeos.services.repositories import Repositories

# =============================================================================
# Mock Redis Client
# =============================================================================


class MockRedisClient:
    """Mock Redis client for testing."""

    def __init__(self):
        self.data = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def delete(self, key):
        if key in self.data:
            del self.data[key]
            return 1
        return 0

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True


class BrokenRedisClient(MockRedisClient):
    async def get(self, key):
        raise redis.RedisError("connection reset")

    async def set(self, key, value):
        raise redis.RedisError("connection reset")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_redis_client():
    return MockRedisClient()


@pytest.fixture
def redis_service(mock_redis_client):
    """RedisService with a mocked client."""
    service = RedisService("redis://localhost:6379/0")
    service._client = mock_redis_client
    return service


# =============================================================================
# In-memory
# =============================================================================


@pytest.mark.asyncio
async def test_memory_store_roundtrip(memory_store):
    assert await memory_store.get("k") is None

    await memory_store.set("k", "v")

    assert await memory_store.get("k") == "v"
    assert memory_store.keys() == ["k"]
    assert await memory_store.delete("k") is True
    assert await memory_store.delete("k") is False


def test_backends_satisfy_protocol(memory_store, redis_service):
    assert isinstance(memory_store, KeyValueStore)
    assert isinstance(SQLKeyValueStore.from_url("sqlite+aiosqlite://"), KeyValueStore)
    assert isinstance(RedisKeyValueStore(redis_service), KeyValueStore)


# =============================================================================
# SQL
# =============================================================================


@pytest.mark.asyncio
async def test_sql_store_insert_and_overwrite(sql_store):
    await sql_store.set("lifeos:patterns", "[]")
    await sql_store.set("lifeos:patterns", '[{"id": "p1"}]')

    assert await sql_store.get("lifeos:patterns") == '[{"id": "p1"}]'
    assert await sql_store.get("lifeos:missing") is None


@pytest.mark.asyncio
async def test_sql_store_delete(sql_store):
    await sql_store.set("k", "v")

    assert await sql_store.delete("k") is True
    assert await sql_store.delete("k") is False
    assert await sql_store.get("k") is None


@pytest.mark.asyncio
async def test_sql_store_errors_become_store_errors():
    """A database without the entries table fails with StoreError."""
    engine = create_async_engine("sqlite+aiosqlite://")
    store = SQLKeyValueStore(async_sessionmaker(engine), engine)

    with pytest.raises(StoreError):
        await store.get("k")
    with pytest.raises(StoreError):
        await store.set("k", "v")

    await store.close()


def test_plain_sqlite_url_uses_async_driver():
    store = SQLKeyValueStore.from_url("sqlite:///lifeos-test.db")

    assert store._engine.url.drivername == "sqlite+aiosqlite"
    assert store._engine.url.database == "lifeos-test.db"


@pytest.mark.asyncio
async def test_sql_store_backs_repositories(sql_store, clock):
    repos = Repositories(sql_store)
    events = EventStore(repos.data_points, clock=clock)

    await events.add(Pillar.HEALTH, "mood", 6)
    await events.add(Pillar.HEALTH, "mood", 7)

    assert [p.value for p in await events.by_type(Pillar.HEALTH, "mood")] == [6.0, 7.0]
    assert len(repos.degradations) == 0


# =============================================================================
# Redis
# =============================================================================


@pytest.mark.asyncio
async def test_redis_store_roundtrip(redis_service, mock_redis_client):
    store = RedisKeyValueStore(redis_service)

    await store.set("lifeos:insights", "[]")

    assert mock_redis_client.data["lifeos:insights"] == "[]"
    assert await store.get("lifeos:insights") == "[]"
    assert await store.delete("lifeos:insights") is True


@pytest.mark.asyncio
async def test_redis_store_unavailable():
    service = RedisService("redis://localhost:6379/0")
    store = RedisKeyValueStore(service)

    with patch.object(RedisService, "_ensure_async_client", AsyncMock(return_value=None)):
        with pytest.raises(StoreUnavailableError):
            await store.get("k")
        with pytest.raises(StoreUnavailableError):
            await store.set("k", "v")


@pytest.mark.asyncio
async def test_redis_errors_become_store_errors():
    service = RedisService("redis://localhost:6379/0")
    service._client = BrokenRedisClient()
    store = RedisKeyValueStore(service)

    with pytest.raises(StoreError):
        await store.get("k")
    with pytest.raises(StoreError):
        await store.set("k", "v")


@pytest.mark.asyncio
async def test_redis_close_releases_client(redis_service, mock_redis_client):
    store = RedisKeyValueStore(redis_service)

    await store.close()

    assert mock_redis_client.closed is True
    assert redis_service._client is None


@pytest.mark.asyncio
async def test_redis_service_connection_failure_is_unavailable():
    service = RedisService("redis://localhost:6379/0")
    failing = AsyncMock()
    failing.ping.side_effect = redis.ConnectionError("refused")

    with patch("lifeos.services.redis_service.redis.from_url", return_value=failing):
        assert await service.is_available() is False
        assert await service.get("k") is None


def test_tls_kwargs_only_for_rediss():
    assert RedisService._tls_kwargs("redis://localhost:6379/0") == {}
    assert "ssl" in RedisService._tls_kwargs("rediss://cache.example:6380/0")


# =============================================================================
# JSON Encoder
# =============================================================================


@dataclass
class Sample:
    name: str
    score: float


def test_encoder_handles_models_and_builtins():
    payload = {
        "sample": Sample("mood", 7.5),
        "when": datetime(2026, 3, 2, 12, 0, tzinfo=UTC),
        "pillar": Pillar.HEALTH,
        "tags": {"a"},
        "pair": (1, 2),
    }

    decoded = json.loads(json.dumps(payload, cls=LifeOSJSONEncoder))

    assert decoded == {
        "sample": {"name": "mood", "score": 7.5},
        "when": "2026-03-02T12:00:00+00:00",
        "pillar": "health",
        "tags": ["a"],
        "pair": [1, 2],
    }


def test_encoder_rejects_unknown_objects():
    with pytest.raises(TypeError):
        json.dumps({"x": object()}, cls=LifeOSJSONEncoder)
