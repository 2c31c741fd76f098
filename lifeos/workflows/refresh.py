"""
Refresh Orchestrator for LifeOS.

The single entry point of the integration engine. One refresh cycle runs
strictly in order:

    ingest producers → purge old points → mine patterns
        → generate recommendations → aggregate LifeIntelligence

Refreshes (and action completions) are serialized behind one asyncio.Lock,
so a manual refresh racing a scheduled one queues instead of interleaving
read-modify-writes. The later refresh simply overwrites the earlier one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from lifeos.core.result import DegradationLog, RefreshStatus
from lifeos.lib.exceptions import LifeOSException, StateError
from lifeos.lib.logging import refresh_context
from lifeos.models.intelligence import LifeIntelligence, PatternFeedback, Recommendation
from lifeos.services.event_store import EventStore
from lifeos.services.ingestion import IngestionReport, PillarIngestor, PillarProducer
from lifeos.services.intelligence_engine import IntelligenceEngine
from lifeos.services.pattern_miner import PatternMiner
from lifeos.services.recommendation_engine import RecommendationEngine

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Result of one refresh cycle.

    Attributes:
        status: success, partial (computed on degraded reads/writes) or failed
        intelligence: The snapshot, None when the cycle failed
        recommendations: Top recommendations of this cycle
        errors: Degradations recorded during the cycle, plus the fatal error
        ingestion: What the ingestion step stored
    """

    status: RefreshStatus
    intelligence: LifeIntelligence | None = None
    recommendations: list[Recommendation] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    ingestion: IngestionReport | None = None

    @property
    def ok(self) -> bool:
        return self.status != RefreshStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "intelligence": self.intelligence.to_dict() if self.intelligence else None,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "errors": list(self.errors),
            "ingestion": self.ingestion.to_dict() if self.ingestion else None,
        }


class RefreshOrchestrator:
    """Runs refresh cycles over explicitly injected services.

    Usage:
        orchestrator = create_orchestrator(settings, producers=[health, decisions])
        result = await orchestrator.refresh()
        if result.ok:
            render(result.intelligence)
        await orchestrator.complete_action(rec_id, action_id)
        await orchestrator.close()
    """

    def __init__(
        self,
        ingestor: PillarIngestor,
        event_store: EventStore,
        pattern_miner: PatternMiner,
        recommendation_engine: RecommendationEngine,
        intelligence_engine: IntelligenceEngine,
        degradations: DegradationLog,
        producers: Sequence[PillarProducer] = (),
        retention_days: int = 90,
        purge_on_refresh: bool = True,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._ingestor = ingestor
        self._event_store = event_store
        self._pattern_miner = pattern_miner
        self._recommendation_engine = recommendation_engine
        self._intelligence_engine = intelligence_engine
        self._degradations = degradations
        self._producers = tuple(producers)
        self._retention_days = retention_days
        self._purge_on_refresh = purge_on_refresh
        self._on_close = on_close
        self._lock = asyncio.Lock()
        self._last_result: RefreshResult | None = None
        self._closed = False
        self._cycle = 0

    @property
    def is_refreshing(self) -> bool:
        return self._lock.locked()

    @property
    def last_result(self) -> RefreshResult | None:
        return self._last_result

    async def refresh(self, producers: Sequence[PillarProducer] | None = None) -> RefreshResult:
        """
        Run one full cycle.

        Args:
            producers: Producers to pull this time (defaults to the configured ones)

        Returns:
            RefreshResult; never raises for store or producer failures

        Raises:
            StateError: If the orchestrator was closed
        """
        if self._lock.locked():
            logger.debug("Refresh already in flight; queueing")

        async with self._lock:
            self._ensure_open()
            self._cycle += 1
            with refresh_context(refresh_cycle=self._cycle):
                result = await self._run_cycle(producers)
            self._last_result = result
        return result

    async def _run_cycle(self, producers: Sequence[PillarProducer] | None) -> RefreshResult:
        # Anything recorded outside a cycle is not this cycle's problem
        self._degradations.drain()
        sources = self._producers if producers is None else tuple(producers)

        try:
            ingestion = await self._ingestor.ingest(sources)
            if self._purge_on_refresh:
                await self._event_store.purge(self._retention_days)
            await self._pattern_miner.mine_patterns()
            recommendations = await self._recommendation_engine.generate_recommendations()
            intelligence = await self._intelligence_engine.generate_life_intelligence(
                smart_actions=recommendations
            )
        except LifeOSException as exc:
            logger.error("Refresh failed: %s", exc)
            errors = [str(d) for d in self._degradations.drain()]
            errors.append(f"{type(exc).__name__}: {exc}")
            return RefreshResult(status=RefreshStatus.FAILED, errors=errors)

        errors = [str(d) for d in self._degradations.drain()]
        status = RefreshStatus.PARTIAL if errors else RefreshStatus.SUCCESS
        logger.info(
            "Refresh %s: score=%.1f change=%+.1f recommendations=%d degraded=%d",
            status, intelligence.overall_score, intelligence.weekly_change,
            len(recommendations), len(errors),
        )
        return RefreshResult(
            status=status,
            intelligence=intelligence,
            recommendations=recommendations,
            errors=errors,
            ingestion=ingestion,
        )

    async def complete_action(self, recommendation_id: str, action_id: str) -> Recommendation | None:
        """Mark one recommendation action complete, serialized with refreshes."""
        async with self._lock:
            self._ensure_open()
            updated = await self._recommendation_engine.complete_action(
                recommendation_id, action_id
            )
            self._degradations.drain()
        return updated

    async def record_pattern_feedback(self, pattern_id: str, feedback: PatternFeedback) -> bool:
        """Store whether the user found a pattern helpful."""
        async with self._lock:
            self._ensure_open()
            updated = await self._pattern_miner.update_pattern_feedback(pattern_id, feedback)
            self._degradations.drain()
        return updated

    async def close(self) -> None:
        """Wait for an in-flight refresh, then release the storage backend."""
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._on_close is not None:
                await self._on_close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise StateError("RefreshOrchestrator is closed")
