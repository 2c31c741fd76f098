"""
Tests for the typed repositories.

Covers:
- Key layout under the configured prefix
- Collection load/save/update
- Degradation on failed reads/writes and corrupted payloads
- A failed read never overwrites stored data
- ValueRepository get/set/swap/load
- Concurrent read-modify-writes do not lose updates
"""

import asyncio
import json

import pytest

from lifeos.config.constants import Pillar
from lifeos.services.event_store import EventStore
from lifeos.services.repositories import Repositories

# =============================================================================
# Keys
# =============================================================================


def test_keys_use_prefix(memory_store):
    repos = Repositories(memory_store, key_prefix="me")

    assert repos.data_points.key == "me:data_points"
    assert repos.patterns.key == "me:patterns"
    assert repos.insights.key == "me:insights"
    assert repos.recommendations.key == "me:recommendations"
    assert repos.last_overall_score.key == "me:last_overall_score"
    assert repos.ingested_events.key == "me:ingested_events"


# =============================================================================
# Collections
# =============================================================================


@pytest.mark.asyncio
async def test_missing_collection_is_empty(repositories):
    assert await repositories.patterns.load() == []
    assert len(repositories.degradations) == 0


@pytest.mark.asyncio
async def test_stored_as_json_list(repositories, event_store, memory_store):
    await event_store.add(Pillar.HEALTH, "mood", 6)

    raw = json.loads(await memory_store.get("lifeos:data_points"))

    assert isinstance(raw, list)
    assert raw[0]["pillar"] == "health"
    assert raw[0]["timestamp"].endswith("+00:00")


@pytest.mark.asyncio
async def test_corrupted_payload_degrades_to_empty(memory_store, repositories):
    await memory_store.set("lifeos:patterns", "{not json")

    assert await repositories.patterns.load() == []
    assert [d.operation for d in repositories.degradations.entries] == ["decode"]


@pytest.mark.asyncio
async def test_non_list_payload_degrades_to_empty(memory_store, repositories):
    await memory_store.set("lifeos:insights", '{"id": "x"}')

    assert await repositories.insights.load() == []
    assert len(repositories.degradations) == 1


@pytest.mark.asyncio
async def test_bad_record_is_skipped(memory_store, repositories, event_store):
    point = await event_store.add(Pillar.HEALTH, "mood", 6)
    records = json.loads(await memory_store.get("lifeos:data_points"))
    records.append({"id": "broken"})
    await memory_store.set("lifeos:data_points", json.dumps(records))

    loaded = await repositories.data_points.load()

    assert [p.id for p in loaded] == [point.id]
    assert len(repositories.degradations) == 1


@pytest.mark.asyncio
async def test_failed_read_degrades_and_never_overwrites(failing_store, clock):
    repos = Repositories(failing_store)
    events = EventStore(repos.data_points, clock=clock)
    await events.add(Pillar.HEALTH, "mood", 6)
    writes_before = failing_store.writes

    failing_store.fail_reads = True
    assert await events.all() == []
    assert await events.add_many([events.build_point(Pillar.HEALTH, "mood", 7)]) == 0
    assert failing_store.writes == writes_before

    failing_store.fail_reads = False
    assert [p.value for p in await events.all()] == [6.0]
    assert {d.operation for d in repos.degradations.entries} == {"read"}


@pytest.mark.asyncio
async def test_failed_write_degrades(failing_store, clock):
    repos = Repositories(failing_store)
    events = EventStore(repos.data_points, clock=clock)
    failing_store.fail_writes = True

    assert await repos.patterns.save([]) is False
    assert await events.add_many([events.build_point(Pillar.HEALTH, "mood", 7)]) == 0
    assert [d.operation for d in repos.degradations.drain()] == ["write", "write"]


@pytest.mark.asyncio
async def test_concurrent_updates_are_serialized(event_store):
    """Parallel appends to one key all survive."""
    await asyncio.gather(*(event_store.add(Pillar.HEALTH, "mood", v) for v in range(20)))

    assert len(await event_store.all()) == 20


# =============================================================================
# Values
# =============================================================================


@pytest.mark.asyncio
async def test_value_get_set(repositories):
    score = repositories.last_overall_score

    assert await score.get() is None
    assert await score.get(default=0.0) == 0.0

    await score.set(7.4)
    assert await score.get() == 7.4


@pytest.mark.asyncio
async def test_value_swap(repositories):
    score = repositories.last_overall_score

    assert await score.swap(6.0) is None
    assert await score.swap(6.5) == 6.0
    assert await score.get() == 6.5


@pytest.mark.asyncio
async def test_value_load_reports_readability(failing_store):
    repos = Repositories(failing_store)
    await repos.ingested_events.set({"health": "2026-03-01T00:00:00+00:00"})

    assert await repos.ingested_events.load() == ({"health": "2026-03-01T00:00:00+00:00"}, True)

    failing_store.fail_reads = True
    assert await repos.ingested_events.load() == (None, False)


@pytest.mark.asyncio
async def test_unencodable_value_is_a_serialization_degradation(repositories):
    assert await repositories.last_overall_score.set(object()) is False

    entry = repositories.degradations.entries[0]
    assert entry.operation == "encode"
    assert "cannot encode lifeos:last_overall_score" in entry.error
