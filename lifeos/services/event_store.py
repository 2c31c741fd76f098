"""
Event Store for LifeOS.

Append-only store of normalized, timestamped metric samples (DataPoints),
one per pillar per observation. Every other component reads from here.

Points are returned in insertion order. ``limit`` arguments keep the most
recently inserted points. Nothing is ever edited; ``purge`` is the only way
points leave the store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from lifeos.config.constants import Pillar
from lifeos.models.intelligence import AggregateStats, DataPoint, new_id, parse_timestamp
from lifeos.services.repositories import CollectionRepository

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class EventStore:
    """
    Queryable store of DataPoints.

    Usage:
        store = EventStore(repositories.data_points)
        await store.add(Pillar.HEALTH, "mood", 7.0)
        stats = await store.aggregate_stats(Pillar.HEALTH, "mood", days=7)
    """

    def __init__(
        self,
        repository: CollectionRepository[DataPoint],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._clock = clock

    # =========================================================================
    # Writes
    # =========================================================================

    async def add(
        self,
        pillar: Pillar,
        type: str,
        value: float,
        metadata: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> DataPoint:
        """
        Append one data point.

        Args:
            pillar: Life domain the observation belongs to
            type: Metric name scoped to the pillar (e.g. "mood")
            value: Numeric observation
            metadata: Opaque key/value bag
            timestamp: Observation time (defaults to now)

        Returns:
            The created DataPoint (returned even if persisting degraded)
        """
        point = self.build_point(pillar, type, value, metadata, timestamp)
        await self.add_many([point])
        return point

    def build_point(
        self,
        pillar: Pillar,
        type: str,
        value: float,
        metadata: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> DataPoint:
        """Create a DataPoint with a fresh id without storing it."""
        return DataPoint(
            id=new_id("dp"),
            pillar=Pillar(pillar),
            type=type,
            timestamp=parse_timestamp(timestamp) if timestamp else self._clock(),
            value=float(value),
            metadata=dict(metadata or {}),
        )

    async def add_many(self, points: Iterable[DataPoint]) -> int:
        """Append a batch in one read-modify-write. Returns the number appended."""
        batch = list(points)
        if not batch:
            return 0

        def append(existing: list[DataPoint]) -> int:
            existing.extend(batch)
            return len(batch)

        added = await self._repository.update(append)
        return added or 0

    async def purge(self, retention_days: int = 90) -> int:
        """
        Delete points older than the retention horizon.

        Returns:
            Number of points removed
        """
        cutoff = self._clock() - timedelta(days=retention_days)

        def drop_old(existing: list[DataPoint]) -> int:
            kept = [p for p in existing if p.timestamp >= cutoff]
            removed = len(existing) - len(kept)
            existing[:] = kept
            return removed

        removed = await self._repository.update(drop_old) or 0
        if removed:
            logger.info("Purged %d data points older than %d days", removed, retention_days)
        return removed

    # =========================================================================
    # Reads
    # =========================================================================

    async def all(self) -> list[DataPoint]:
        return await self._repository.load()

    async def by_pillar(self, pillar: Pillar, limit: int | None = None) -> list[DataPoint]:
        points = [p for p in await self.all() if p.pillar == pillar]
        return _tail(points, limit)

    async def by_type(self, pillar: Pillar, type: str, limit: int | None = None) -> list[DataPoint]:
        points = [p for p in await self.by_pillar(pillar) if p.type == type]
        return _tail(points, limit)

    async def in_range(self, pillar: Pillar, start: datetime, end: datetime) -> list[DataPoint]:
        """Points of a pillar with ``start <= timestamp <= end``."""
        start, end = parse_timestamp(start), parse_timestamp(end)
        return [p for p in await self.by_pillar(pillar) if start <= p.timestamp <= end]

    async def recent(self, days: int = 30) -> list[DataPoint]:
        """Points of every pillar observed within the last ``days`` days."""
        cutoff = self._clock() - timedelta(days=days)
        return [p for p in await self.all() if p.timestamp >= cutoff]

    async def aggregate_stats(self, pillar: Pillar, type: str, days: int = 7) -> AggregateStats:
        """
        Summarize the most recent ``days`` samples of one metric.

        Samples are picked and ordered by timestamp, so a late-arriving older
        observation lands in its place in the window.

        ``trend`` is the mean of the second half of the window minus the
        mean of the first half (split at n // 2). Fewer than two samples
        have no trend.

        Returns:
            AggregateStats; all zeros with count=0 when there is no data
        """
        samples = sorted(await self.by_type(pillar, type), key=lambda p: p.timestamp)
        recent = _tail(samples, days)
        if not recent:
            return AggregateStats()

        values = [p.value for p in recent]
        half = len(values) // 2
        trend = 0.0
        if half:
            first, second = values[:half], values[half:]
            trend = sum(second) / len(second) - sum(first) / len(first)

        return AggregateStats(
            avg=sum(values) / len(values),
            min=min(values),
            max=max(values),
            trend=trend,
            count=len(values),
        )


def _tail(points: list[DataPoint], limit: int | None) -> list[DataPoint]:
    if limit is None:
        return points
    if limit <= 0:
        return []
    return points[-limit:]
