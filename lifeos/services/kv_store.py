"""
Key-value store backends for LifeOS.

Every persisted collection is one string value under one key. Backends only
move strings; serialization happens in the repositories.

Backends:
- InMemoryKeyValueStore: process-local dict (tests, development)
- RedisKeyValueStore: Redis via RedisService
- SQLKeyValueStore: a SQLAlchemy table over an async engine (e.g. SQLite via aiosqlite)

All backends raise ``StoreError`` (or ``StoreUnavailableError``) on failure
instead of returning sentinel values.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

import redis.asyncio as redis
from sqlalchemy import select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lifeos.lib.exceptions import StoreError, StoreUnavailableError
from lifeos.models.base import Base
from lifeos.models.kv_entry import KeyValueEntry
from lifeos.services.redis_service import RedisService


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string key-value store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> bool: ...


class InMemoryKeyValueStore:
    """Dict-backed store. Not persistent."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)

    async def close(self) -> None:
        """Nothing to release."""


class RedisKeyValueStore:
    """Store backed by Redis."""

    def __init__(self, redis_service: RedisService) -> None:
        self._redis = redis_service

    async def _require_connection(self) -> None:
        if not await self._redis.is_available():
            raise StoreUnavailableError("Redis is not reachable")

    async def get(self, key: str) -> str | None:
        await self._require_connection()
        try:
            return await self._redis.get(key)
        except redis.RedisError as exc:
            raise StoreError(f"Redis GET {key} failed: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        await self._require_connection()
        try:
            ok = await self._redis.set(key, value)
        except redis.RedisError as exc:
            raise StoreError(f"Redis SET {key} failed: {exc}") from exc
        if not ok:
            raise StoreError(f"Redis SET {key} was not acknowledged")

    async def delete(self, key: str) -> bool:
        await self._require_connection()
        try:
            return await self._redis.delete(key)
        except redis.RedisError as exc:
            raise StoreError(f"Redis DEL {key} failed: {exc}") from exc

    async def close(self) -> None:
        await self._redis.close()


class SQLKeyValueStore:
    """
    Store backed by a single SQLAlchemy table, accessed through AsyncSession.

    The entries table is created on first use when the store was built by
    ``from_url``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
        create_schema: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self._schema_ready = not create_schema
        self._schema_lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> SQLKeyValueStore:
        """
        Create the async engine. No connection is opened until first use.

        Args:
            database_url: SQLAlchemy URL, e.g. "sqlite+aiosqlite:///lifeos.db".
                A plain "sqlite://" URL is switched to the aiosqlite driver.
        """
        engine = _create_engine(database_url)
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine, create_schema=True)

    async def _ensure_schema(self) -> None:
        if self._schema_ready or self._engine is None:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            try:
                async with self._engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all, tables=[KeyValueEntry.__table__])
            except SQLAlchemyError as exc:
                raise StoreError(f"SQL schema setup failed: {exc}") from exc
            self._schema_ready = True

    async def get(self, key: str) -> str | None:
        await self._ensure_schema()
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(KeyValueEntry.value).where(KeyValueEntry.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"SQL read of {key} failed: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        await self._ensure_schema()
        try:
            async with self._session_factory() as session, session.begin():
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
        except SQLAlchemyError as exc:
            raise StoreError(f"SQL write of {key} failed: {exc}") from exc

    async def delete(self, key: str) -> bool:
        await self._ensure_schema()
        try:
            async with self._session_factory() as session, session.begin():
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    return False
                await session.delete(entry)
                return True
        except SQLAlchemyError as exc:
            raise StoreError(f"SQL delete of {key} failed: {exc}") from exc

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


def _create_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    if url.drivername == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # A single shared connection, otherwise every session sees an empty database
        return create_async_engine(url, poolclass=StaticPool)
    return create_async_engine(url)
