"""
Pillar Ingestion for LifeOS.

Pulls recent raw events from the pillar producers, normalizes them into
DataPoints and appends them to the Event Store in one batch.

- The identities of ingested events are persisted for the retention horizon,
  so events a producer returns again on the next pull are not stored twice
  while late events of any metric are still accepted.
- Threshold rules (``DERIVED_EVENT_RULES``) add derived events next to the raw
  metric, e.g. ``sleep < 7`` also records a ``sleep_low`` point. The pattern
  catalog mines these derived events.
- A failing producer is logged and recorded; the others still ingest.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from lifeos.config.constants import DERIVED_EVENT_RULES, DerivedEventRule, Pillar
from lifeos.core.result import DegradationLog
from lifeos.lib.exceptions import IngestionError
from lifeos.models.intelligence import DataPoint, parse_timestamp
from lifeos.services.event_store import EventStore, utc_now
from lifeos.services.repositories import ValueRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawEvent:
    """One observation as a producer reports it."""

    metric: str
    value: float
    timestamp: datetime | str
    tags: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PillarProducer(Protocol):
    """Source of recent raw events for one pillar."""

    pillar: Pillar

    async def pull_recent(self) -> list[RawEvent]: ...


@dataclass
class IngestionReport:
    """What one ingestion pass stored."""

    ingested: dict[Pillar, int] = field(default_factory=dict)
    derived: int = 0
    duplicates: int = 0
    expired: int = 0
    failed: list[Pillar] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.ingested.values()) + self.derived

    def to_dict(self) -> dict[str, Any]:
        return {
            "ingested": {p.value: n for p, n in self.ingested.items()},
            "derived": self.derived,
            "duplicates": self.duplicates,
            "expired": self.expired,
            "failed": [p.value for p in self.failed],
        }


class PillarIngestor:
    """
    Move producer events into the Event Store exactly once.

    An event is identified by ``(pillar, metric, timestamp)``. The identities
    stored within the retention horizon are persisted, so an event is skipped
    only when that exact observation was ingested before, whatever else the
    pillar reported in between.

    Usage:
        ingestor = PillarIngestor(event_store, repositories.ingested_events)
        report = await ingestor.ingest([health_producer, decisions_producer])
    """

    def __init__(
        self,
        event_store: EventStore,
        ledger: ValueRepository,
        degradations: DegradationLog | None = None,
        rules: Sequence[DerivedEventRule] = DERIVED_EVENT_RULES,
        retention_days: int = 90,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._event_store = event_store
        self._ledger = ledger
        self._degradations = degradations
        self._rules = tuple(rules)
        self._retention_days = retention_days
        self._clock = clock

    async def ingest(self, producers: Sequence[PillarProducer]) -> IngestionReport:
        """
        Pull every producer and store the new events.

        Each producer's points are appended in timestamp order. The ledger of
        ingested events is only updated once the batch has been stored.
        """
        report = IngestionReport()
        if not producers:
            return report

        stored, readable = await self._ledger.load()
        if not readable:
            # Without the ledger every re-pulled event would be duplicated
            logger.warning("Ingestion skipped: ingested-event ledger could not be read")
            report.failed.extend(Pillar(p.pillar) for p in producers)
            return report

        cutoff = self._clock() - timedelta(days=self._retention_days)
        seen = _load_ledger(stored, cutoff)
        batch: list[DataPoint] = []
        for producer in producers:
            pillar = Pillar(producer.pillar)
            try:
                events = await producer.pull_recent()
            except Exception as exc:
                self._record(pillar, IngestionError(f"{pillar} producer failed: {exc!r}"))
                report.failed.append(pillar)
                continue

            batch.extend(self._normalize(pillar, events, seen, cutoff, report))

        if batch:
            added = await self._event_store.add_many(batch)
            if added != len(batch):
                logger.warning("Ingestion batch of %d points was not stored", len(batch))
                report.failed.extend(p for p in report.ingested if p not in report.failed)
                report.ingested.clear()
                report.derived = 0
                return report
            await self._ledger.set(_dump_ledger(seen))

        logger.info(
            "Ingested %d points (%d derived, %d duplicates, %d expired skipped)",
            report.total, report.derived, report.duplicates, report.expired,
        )
        return report

    def _normalize(
        self,
        pillar: Pillar,
        events: Sequence[RawEvent],
        seen: dict[tuple[str, str, str], datetime],
        cutoff: datetime,
        report: IngestionReport,
    ) -> list[DataPoint]:
        accepted: list[tuple[datetime, RawEvent, float]] = []
        for event in events:
            try:
                timestamp = parse_timestamp(event.timestamp).astimezone(UTC)
                value = float(event.value)
            except (TypeError, ValueError) as exc:
                self._record(pillar, f"dropped malformed {event.metric!r} event: {exc}")
                continue

            if timestamp < cutoff:
                report.expired += 1
                continue
            identity = (pillar.value, event.metric, timestamp.isoformat())
            if identity in seen:
                report.duplicates += 1
                continue
            seen[identity] = timestamp
            accepted.append((timestamp, event, value))

        # Producers may report newest-first; the store keeps arrival order
        accepted.sort(key=lambda item: item[0])

        points: list[DataPoint] = []
        for timestamp, event, value in accepted:
            points.append(self._event_store.build_point(
                pillar, event.metric, value, metadata=event.tags, timestamp=timestamp
            ))
            for rule in self._rules:
                if rule.pillar != pillar or rule.metric != event.metric:
                    continue
                fired = value < rule.threshold if rule.below else value >= rule.threshold
                if fired:
                    points.append(self._event_store.build_point(
                        pillar,
                        rule.event,
                        value,
                        metadata={"derived_from": event.metric},
                        timestamp=timestamp,
                    ))
                    report.derived += 1

        report.ingested[pillar] = report.ingested.get(pillar, 0) + len(accepted)
        return points

    def _record(self, pillar: Pillar, error: BaseException | str) -> None:
        logger.warning("Ingestion of %s degraded: %s", pillar, error)
        if self._degradations is not None:
            self._degradations.record(f"ingest.{pillar}", "pull", error)


def _load_ledger(stored: Any, cutoff: datetime) -> dict[tuple[str, str, str], datetime]:
    """Rebuild the identity set from ``{pillar: {metric: [iso, ...]}}``, dropping expired entries."""
    seen: dict[tuple[str, str, str], datetime] = {}
    if not isinstance(stored, dict):
        return seen
    for pillar, metrics in stored.items():
        if not isinstance(metrics, dict):
            continue
        for metric, stamps in metrics.items():
            for stamp in stamps or ():
                try:
                    timestamp = parse_timestamp(stamp).astimezone(UTC)
                except (TypeError, ValueError):
                    continue
                if timestamp >= cutoff:
                    seen[(pillar, metric, timestamp.isoformat())] = timestamp
    return seen


def _dump_ledger(seen: dict[tuple[str, str, str], datetime]) -> dict[str, dict[str, list[str]]]:
    ledger: dict[str, dict[str, list[str]]] = {}
    for (pillar, metric, stamp), timestamp in sorted(seen.items(), key=lambda item: item[1]):
        ledger.setdefault(pillar, {}).setdefault(metric, []).append(stamp)
    return ledger
