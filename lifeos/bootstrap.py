"""
Composition root for LifeOS.

Every engine component is constructed exactly once here and handed to the
RefreshOrchestrator by reference. Nothing in the package keeps module-level
service instances.

Usage:
    settings = EngineSettings.from_env()
    orchestrator = create_orchestrator(settings, producers=[health_producer])
    result = await orchestrator.refresh()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from lifeos.config.settings import EngineSettings, StorageBackend
from lifeos.services.event_store import EventStore, utc_now
from lifeos.services.ingestion import PillarIngestor, PillarProducer
from lifeos.services.intelligence_engine import IntelligenceEngine
from lifeos.services.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    SQLKeyValueStore,
)
from lifeos.services.pattern_miner import PatternMiner
from lifeos.services.recommendation_engine import RecommendationEngine
from lifeos.services.redis_service import RedisService
from lifeos.services.repositories import Repositories
from lifeos.workflows.refresh import RefreshOrchestrator

logger = logging.getLogger(__name__)


def build_store(settings: EngineSettings) -> KeyValueStore:
    """Create the key-value backend selected in the settings."""
    backend = settings.storage_backend
    if backend == StorageBackend.REDIS:
        return RedisKeyValueStore(RedisService(settings.redis_url))
    if backend == StorageBackend.SQL:
        return SQLKeyValueStore.from_url(settings.database_url)
    return InMemoryKeyValueStore()


def create_orchestrator(
    settings: EngineSettings | None = None,
    store: KeyValueStore | None = None,
    producers: Sequence[PillarProducer] = (),
    clock: Callable[[], datetime] = utc_now,
) -> RefreshOrchestrator:
    """
    Wire the full engine.

    Args:
        settings: Engine settings (defaults to EngineSettings())
        store: Backend to use instead of the one the settings select
        producers: Pillar producers pulled on every refresh
        clock: Source of "now" for every component

    Returns:
        A ready RefreshOrchestrator
    """
    settings = settings or EngineSettings()
    store = store if store is not None else build_store(settings)
    repositories = Repositories(store, key_prefix=settings.key_prefix)

    event_store = EventStore(repositories.data_points, clock=clock)
    miner = PatternMiner(
        event_store,
        repositories.patterns,
        time_window=timedelta(days=settings.pattern_window_days),
        min_occurrences=settings.min_occurrences,
        sample_limit=settings.sample_limit,
        clock=clock,
    )
    recommender = RecommendationEngine(
        event_store,
        repositories.recommendations,
        limit=settings.recommendation_limit,
        stats_window=settings.stats_window,
        completion_policy=settings.completion_policy,
        clock=clock,
    )
    intelligence = IntelligenceEngine(
        event_store,
        miner,
        repositories.insights,
        repositories.last_overall_score,
        stats_window=settings.stats_window,
        insight_limit=settings.insight_limit,
        clock=clock,
    )
    ingestor = PillarIngestor(
        event_store,
        repositories.ingested_events,
        degradations=repositories.degradations,
        retention_days=settings.retention_days,
        clock=clock,
    )

    logger.info(
        "LifeOS engine ready (backend=%s, prefix=%s, producers=%d)",
        settings.storage_backend, settings.key_prefix, len(producers),
    )
    return RefreshOrchestrator(
        ingestor=ingestor,
        event_store=event_store,
        pattern_miner=miner,
        recommendation_engine=recommender,
        intelligence_engine=intelligence,
        degradations=repositories.degradations,
        producers=producers,
        retention_days=settings.retention_days,
        purge_on_refresh=settings.purge_on_refresh,
        on_close=getattr(store, "close", None),
    )
