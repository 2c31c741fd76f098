"""
Pattern Miner for LifeOS.

Discovers cross-pillar co-occurrence patterns between pairs of event types.

For every catalog definition (pillar A / event A, pillar B / event B):
1. Fetch the most recent bounded sample of each side
2. Count every cross pair whose timestamps are within the time window
3. correlation = co-occurrences / max(|A|, |B|), capped at 1.0
4. Skip the definition if co-occurrences < min_occurrences or
   correlation < the "moderate" threshold
5. Classify the pattern type by average time gap and the confidence tier
   by (correlation, occurrences), then upsert by (pillar A, pillar B,
   event A, event B)

The pairwise comparison is O(|A| x |B|); the per-side sample limit keeps it
cheap enough to run on every refresh.

This is a deterministic threshold engine, not statistical inference.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from lifeos.config.constants import (
    CAUSAL_MAX_GAP,
    CONFIDENCE_LEVELS,
    CORRELATION_THRESHOLDS,
    CROSS_PILLAR_PATTERNS,
    MIN_OCCURRENCES,
    PATTERN_SAMPLE_LIMIT,
    PATTERN_TIME_WINDOW,
    PREDICTIVE_MAX_GAP,
    PatternDefinition,
    Pillar,
)
from lifeos.models.intelligence import (
    ConfidenceLevel,
    DataPoint,
    Pattern,
    PatternFeedback,
    PatternType,
    new_id,
)
from lifeos.services.event_store import EventStore, utc_now
from lifeos.services.repositories import CollectionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrelationResult:
    """Raw co-occurrence statistics for one pair of event series."""

    correlation: float
    occurrences: int
    avg_time_gap: timedelta


class PatternMiner:
    """
    Mine and maintain the set of discovered cross-pillar patterns.

    Usage:
        miner = PatternMiner(event_store, repositories.patterns)
        found = await miner.mine_patterns()
        await miner.update_pattern_feedback(found[0].id, PatternFeedback.HELPFUL)
    """

    def __init__(
        self,
        event_store: EventStore,
        repository: CollectionRepository[Pattern],
        catalog: Sequence[PatternDefinition] = CROSS_PILLAR_PATTERNS,
        time_window: timedelta = PATTERN_TIME_WINDOW,
        min_occurrences: int = MIN_OCCURRENCES,
        sample_limit: int = PATTERN_SAMPLE_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._event_store = event_store
        self._repository = repository
        self._catalog = tuple(catalog)
        self._time_window = time_window
        self._min_occurrences = min_occurrences
        self._sample_limit = sample_limit
        self._clock = clock

    async def mine_patterns(self) -> list[Pattern]:
        """
        Run every catalog definition and upsert what was found.

        Returns:
            Patterns discovered in this pass (as stored after the upsert)
        """
        found: list[Pattern] = []
        for definition in self._catalog:
            pattern = await self.find_pattern(
                definition.pillar_a,
                definition.event_a,
                definition.pillar_b,
                definition.event_b,
            )
            if pattern is not None:
                found.append(pattern)

        if not found:
            logger.debug("Pattern mining found nothing across %d definitions", len(self._catalog))
            return []

        stored = await self._upsert(found)
        logger.info("Pattern mining found %d of %d definitions", len(found), len(self._catalog))
        return stored if stored is not None else found

    async def find_pattern(
        self,
        pillar_a: Pillar,
        event_a: str,
        pillar_b: Pillar,
        event_b: str,
    ) -> Pattern | None:
        """
        Evaluate one definition against the event store.

        Returns:
            A fresh Pattern, or None when there is not enough evidence
        """
        points_a = await self._event_store.by_type(pillar_a, event_a, limit=self._sample_limit)
        points_b = await self._event_store.by_type(pillar_b, event_b, limit=self._sample_limit)
        if not points_a or not points_b:
            return None

        result = self.calculate_correlation(points_a, points_b)
        if result.occurrences < self._min_occurrences:
            logger.debug(
                "Skipping %s/%s -> %s/%s: %d co-occurrences",
                pillar_a, event_a, pillar_b, event_b, result.occurrences,
            )
            return None
        if result.correlation < CORRELATION_THRESHOLDS["moderate"]:
            logger.debug(
                "Skipping %s/%s -> %s/%s: correlation %.2f",
                pillar_a, event_a, pillar_b, event_b, result.correlation,
            )
            return None

        now = self._clock()
        return Pattern(
            id=new_id("pattern"),
            type=self.determine_pattern_type(result.avg_time_gap),
            pillar_a=pillar_a,
            pillar_b=pillar_b,
            event_a=event_a,
            event_b=event_b,
            correlation=result.correlation,
            occurrences=result.occurrences,
            confidence=self.determine_confidence(result.correlation, result.occurrences),
            strength=result.correlation,
            description=self.describe(pillar_a, event_a, pillar_b, event_b, result.correlation),
            created_at=now,
            last_seen=now,
        )

    def calculate_correlation(
        self,
        points_a: Sequence[DataPoint],
        points_b: Sequence[DataPoint],
    ) -> CorrelationResult:
        """Count cross pairs within the time window and their average gap."""
        if not points_a or not points_b:
            return CorrelationResult(0.0, 0, timedelta(0))

        matches = 0
        total_gap = timedelta(0)
        for point_a in points_a:
            for point_b in points_b:
                gap = abs(point_b.timestamp - point_a.timestamp)
                if gap <= self._time_window:
                    matches += 1
                    total_gap += gap

        correlation = min(1.0, matches / max(len(points_a), len(points_b)))
        avg_gap = total_gap / matches if matches else timedelta(0)
        return CorrelationResult(correlation, matches, avg_gap)

    @staticmethod
    def determine_confidence(correlation: float, occurrences: int) -> ConfidenceLevel:
        """Highest tier whose correlation and occurrence minimums are both met."""
        for tier, (min_correlation, min_occurrences) in CONFIDENCE_LEVELS.items():
            if correlation >= min_correlation and occurrences >= min_occurrences:
                return ConfidenceLevel(tier)
        return ConfidenceLevel.LOW

    @staticmethod
    def determine_pattern_type(avg_time_gap: timedelta) -> PatternType:
        if avg_time_gap < CAUSAL_MAX_GAP:
            return PatternType.CAUSAL
        if avg_time_gap < PREDICTIVE_MAX_GAP:
            return PatternType.PREDICTIVE
        return PatternType.CORRELATIONAL

    @staticmethod
    def describe(
        pillar_a: Pillar,
        event_a: str,
        pillar_b: Pillar,
        event_b: str,
        correlation: float,
    ) -> str:
        """e.g. "sleep low in health → 1.8× procrastination high in procrastination"."""
        multiplier = 1 + correlation
        return (
            f"{event_a.replace('_', ' ')} in {pillar_a} → "
            f"{multiplier:.1f}× {event_b.replace('_', ' ')} in {pillar_b}"
        )

    async def get_patterns(self) -> list[Pattern]:
        return await self._repository.load()

    async def update_pattern_feedback(self, pattern_id: str, feedback: PatternFeedback) -> bool:
        """
        Record whether the user found a pattern helpful.

        Returns:
            False if the pattern does not exist (or could not be updated)
        """
        def apply(patterns: list[Pattern]) -> bool:
            for pattern in patterns:
                if pattern.id == pattern_id:
                    pattern.user_feedback = PatternFeedback(feedback)
                    return True
            return False

        updated = await self._repository.update(apply)
        if not updated:
            logger.warning("Feedback for unknown pattern %s ignored", pattern_id)
        return bool(updated)

    async def _upsert(self, found: list[Pattern]) -> list[Pattern] | None:
        """Merge found patterns by key, keeping id, created_at and feedback."""
        now = self._clock()

        def merge(existing: list[Pattern]) -> list[Pattern]:
            by_key = {p.key: p for p in existing}
            stored: list[Pattern] = []
            for pattern in found:
                current = by_key.get(pattern.key)
                if current is None:
                    existing.append(pattern)
                    by_key[pattern.key] = pattern
                    stored.append(pattern)
                    continue
                current.type = pattern.type
                current.correlation = pattern.correlation
                current.occurrences = pattern.occurrences
                current.confidence = pattern.confidence
                current.strength = pattern.strength
                current.description = pattern.description
                current.last_seen = now
                stored.append(current)
            return stored

        return await self._repository.update(merge)
