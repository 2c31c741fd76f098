"""
Shared test fixtures for LifeOS.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode logging)
- A controllable clock
- Key-value stores (in-memory, in-memory SQLite, and a failing fake)
- Repositories and an EventStore wired to them

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("LIFEOS_DEV_MODE", "1")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from lifeos.lib.exceptions import StoreError  # noqa: E402
from lifeos.services.event_store import EventStore  # noqa: E402
from lifeos.services.kv_store import InMemoryKeyValueStore, SQLKeyValueStore  # noqa: E402
from lifeos.services.repositories import Repositories  # noqa: E402

START = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


class FixedClock:
    """Deterministic replacement for ``utc_now``."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FailingKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose reads and/or writes can be switched to fail."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False) -> None:
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.writes = 0

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise StoreError(f"read of {key} failed")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StoreError(f"write of {key} failed")
        self.writes += 1
        await super().set(key, value)


# ---------------------------------------------------------------------------
# 2. clock -- fixed "now" shared by every component under test
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock():
    return FixedClock()


# ---------------------------------------------------------------------------
# 3. Stores
# ---------------------------------------------------------------------------

@pytest.fixture()
def memory_store():
    return InMemoryKeyValueStore()


@pytest.fixture()
def failing_store():
    """Store that works until a test flips ``fail_reads`` / ``fail_writes``."""
    return FailingKeyValueStore()


@pytest_asyncio.fixture()
async def sql_store():
    """
    SQLKeyValueStore backed by an in-memory SQLite database (aiosqlite).

    A fresh database is created for every test that requests this fixture.
    """
    store = SQLKeyValueStore.from_url("sqlite+aiosqlite://")
    yield store
    await store.close()


# ---------------------------------------------------------------------------
# 4. repositories / event_store
# ---------------------------------------------------------------------------

@pytest.fixture()
def repositories(memory_store):
    return Repositories(memory_store)


@pytest.fixture()
def event_store(repositories, clock):
    return EventStore(repositories.data_points, clock=clock)
