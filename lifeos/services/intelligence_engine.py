"""
Intelligence Engine for LifeOS.

Turns event statistics and discovered patterns into the LifeIntelligence
snapshot:

- Pillar health: 0-10 score, trend and status per pillar from the pillar's
  canonical metric (health <- mood, procrastination <- 10 - avoidance rate,
  decisions <- decision quality). Relationships and simulator have no metric
  source in this engine and report fixed placeholder values.
- Overall score: weight-normalized sum of the pillar scores.
- Weekly change: delta against the last persisted overall score (a one-slot
  ratchet, overwritten on every computation).
- Insights: the top patterns by correlation x occurrences, with template
  actions. The stored insight list is replaced every cycle.
- Week forecast: energy/mood from health, productivity from procrastination.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime

from lifeos.config.constants import (
    COACH_MESSAGES,
    INSIGHT_ACTION_TEMPLATES,
    INSIGHT_IMPACT_THRESHOLDS,
    PILLAR_METRICS,
    PILLAR_WEIGHTS,
    PLACEHOLDER_PILLAR_HEALTH,
    SCORE_THRESHOLDS,
    TREND_THRESHOLD,
    Pillar,
)
from lifeos.lib.exceptions import ConfigurationError
from lifeos.models.intelligence import (
    AggregateStats,
    HealthStatus,
    Impact,
    Insight,
    LifeIntelligence,
    Pattern,
    PillarHealth,
    Productivity,
    Recommendation,
    Trend,
    WeekForecast,
)
from lifeos.services.event_store import EventStore, utc_now
from lifeos.services.pattern_miner import PatternMiner
from lifeos.services.repositories import CollectionRepository, ValueRepository

logger = logging.getLogger(__name__)

_PILLAR_ORDER = (
    Pillar.HEALTH,
    Pillar.PROCRASTINATION,
    Pillar.DECISIONS,
    Pillar.RELATIONSHIPS,
    Pillar.SIMULATOR,
)


def score_status(score: float) -> HealthStatus:
    """Map a 0-10 score onto the fixed status thresholds."""
    if score >= SCORE_THRESHOLDS["excellent"]:
        return HealthStatus.EXCELLENT
    if score >= SCORE_THRESHOLDS["good"]:
        return HealthStatus.GOOD
    if score >= SCORE_THRESHOLDS["warning"]:
        return HealthStatus.WARNING
    return HealthStatus.CRITICAL


def trend_from_delta(delta: float, higher_is_better: bool = True) -> Trend:
    """Classify a second-half-minus-first-half delta."""
    if not higher_is_better:
        delta = -delta
    if delta > TREND_THRESHOLD:
        return Trend.IMPROVING
    if delta < -TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


# =============================================================================
# Pillar messages
# =============================================================================

def _health_message(score: float, trend: float) -> str:
    if score >= 8 and trend > 0:
        return "Excellent health streak!"
    if score >= 8:
        return "Maintaining great health"
    if score >= 7:
        return "Good health overall"
    if trend < 0:
        return "Health declining - take action"
    return "Health needs attention"


def _procrastination_message(score: float, trend: float) -> str:
    # trend is the raw avoidance delta: rising avoidance is bad
    if score >= 8:
        return "Low procrastination - crushing it!"
    if score >= 7:
        return "Managing tasks well"
    if trend > 0:
        return "Procrastination increasing"
    return "High avoidance detected"


def _decision_message(score: float, trend: float) -> str:
    if score >= 8:
        return "Making excellent decisions"
    if score >= 7:
        return "Good decision quality"
    if trend < 0:
        return "Decision quality declining"
    return "Decisions need more thought"


_MESSAGE_BUILDERS: dict[Pillar, Callable[[float, float], str]] = {
    Pillar.HEALTH: _health_message,
    Pillar.PROCRASTINATION: _procrastination_message,
    Pillar.DECISIONS: _decision_message,
}


class IntelligenceEngine:
    """
    Compute pillar health, the overall score, insights and the forecast.

    Usage:
        engine = IntelligenceEngine(event_store, miner, repos.insights, repos.last_overall_score)
        snapshot = await engine.generate_life_intelligence(smart_actions=recommendations)
    """

    def __init__(
        self,
        event_store: EventStore,
        pattern_miner: PatternMiner,
        insight_repository: CollectionRepository[Insight],
        score_repository: ValueRepository,
        weights: Mapping[Pillar, float] = PILLAR_WEIGHTS,
        stats_window: int = 7,
        insight_limit: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-9):
            raise ConfigurationError(f"Pillar weights must sum to 1, got {sum(weights.values())}")
        self._event_store = event_store
        self._pattern_miner = pattern_miner
        self._insights = insight_repository
        self._last_score = score_repository
        self._weights = dict(weights)
        self._stats_window = stats_window
        self._insight_limit = insight_limit
        self._clock = clock

    # =========================================================================
    # Snapshot
    # =========================================================================

    async def generate_life_intelligence(
        self,
        smart_actions: Sequence[Recommendation] = (),
    ) -> LifeIntelligence:
        """Assemble the full snapshot for one refresh cycle."""
        pillar_health = await self.calculate_pillar_health()
        overall_score = self.calculate_overall_score(pillar_health)
        weekly_change = await self.calculate_weekly_change(overall_score)
        insights = await self.generate_insights()
        forecast = self.generate_week_forecast(pillar_health)

        return LifeIntelligence(
            overall_score=overall_score,
            weekly_change=weekly_change,
            top_insight=insights[0] if insights else None,
            pillar_health=pillar_health,
            smart_actions=list(smart_actions),
            week_forecast=forecast,
            headline=self.choose_headline(overall_score, weekly_change, pillar_health),
            updated_at=self._clock(),
        )

    # =========================================================================
    # Pillar health
    # =========================================================================

    async def calculate_pillar_health(self) -> list[PillarHealth]:
        """One PillarHealth per pillar, in a fixed order."""
        results: list[PillarHealth] = []
        for pillar in _PILLAR_ORDER:
            if pillar in PILLAR_METRICS:
                stats = await self._event_store.aggregate_stats(
                    pillar, PILLAR_METRICS[pillar], days=self._stats_window
                )
                results.append(self._measured_health(pillar, stats))
            else:
                placeholder = PLACEHOLDER_PILLAR_HEALTH[pillar]
                results.append(PillarHealth(
                    pillar=pillar,
                    score=float(placeholder["score"]),
                    trend=Trend(placeholder["trend"]),
                    status=HealthStatus(placeholder["status"]),
                    message=str(placeholder["message"]),
                    measured=False,
                ))
        return results

    def _measured_health(self, pillar: Pillar, stats: AggregateStats) -> PillarHealth:
        if not stats.has_data:
            logger.debug("No %s data yet; scoring %s as 0", PILLAR_METRICS[pillar], pillar)
            return PillarHealth(
                pillar=pillar,
                score=0.0,
                trend=Trend.STABLE,
                status=score_status(0.0),
                message=f"No {pillar} data yet",
                measured=False,
            )

        if pillar == Pillar.PROCRASTINATION:
            # avoidance rate is inverted: less avoidance, better score
            score = max(0.0, 10.0 - stats.avg)
            trend = trend_from_delta(stats.trend, higher_is_better=False)
        else:
            score = stats.avg
            trend = trend_from_delta(stats.trend)
        score = min(10.0, max(0.0, score))

        return PillarHealth(
            pillar=pillar,
            score=score,
            trend=trend,
            status=score_status(score),
            message=_MESSAGE_BUILDERS[pillar](score, stats.trend),
        )

    def calculate_overall_score(self, pillar_health: Sequence[PillarHealth]) -> float:
        """Weight-normalized mean of the pillar scores, one decimal."""
        weighted_sum = 0.0
        total_weight = 0.0
        for health in pillar_health:
            weight = self._weights.get(health.pillar, 0.0)
            weighted_sum += health.score * weight
            total_weight += weight
        if total_weight == 0:
            return 0.0
        return round(weighted_sum / total_weight, 1)

    async def calculate_weekly_change(self, current_score: float) -> float:
        """
        Delta against the previously persisted overall score.

        The stored score is overwritten with ``current_score``; the first
        computation ever returns 0.
        """
        previous = await self._last_score.swap(current_score)
        if previous is None:
            return 0.0
        try:
            return round(current_score - float(previous), 1)
        except (TypeError, ValueError):
            logger.warning("Ignoring unreadable last overall score %r", previous)
            return 0.0

    # =========================================================================
    # Insights
    # =========================================================================

    async def generate_insights(self) -> list[Insight]:
        """Build insights from the top patterns and replace the stored list."""
        patterns = await self._pattern_miner.get_patterns()
        top = sorted(patterns, key=lambda p: p.score, reverse=True)[: self._insight_limit]

        now = self._clock()
        insights = [
            Insight(
                id=f"insight_{pattern.id}",
                pattern=pattern,
                message=pattern.description,
                impact=self.classify_impact(pattern.correlation),
                actions=self.generate_actions(pattern),
                score=pattern.score,
                created_at=now,
            )
            for pattern in top
        ]
        await self._insights.save(insights)
        return insights

    async def get_insights(self) -> list[Insight]:
        return await self._insights.load()

    @staticmethod
    def classify_impact(correlation: float) -> Impact:
        if correlation > INSIGHT_IMPACT_THRESHOLDS["positive"]:
            return Impact.POSITIVE
        if correlation < INSIGHT_IMPACT_THRESHOLDS["negative"]:
            return Impact.NEGATIVE
        return Impact.NEUTRAL

    @staticmethod
    def generate_actions(pattern: Pattern) -> list[str]:
        """Template actions matched on event names, else a generic pair."""
        for keyword_a, keyword_b, actions in INSIGHT_ACTION_TEMPLATES:
            if keyword_a in pattern.event_a and keyword_b in pattern.event_b:
                return list(actions)
        return [
            f"Monitor {pattern.event_a} in {pattern.pillar_a}",
            f"Track impact on {pattern.event_b} in {pattern.pillar_b}",
        ]

    # =========================================================================
    # Forecast & headline
    # =========================================================================

    @staticmethod
    def generate_week_forecast(pillar_health: Sequence[PillarHealth]) -> WeekForecast:
        by_pillar = {h.pillar: h for h in pillar_health}
        health = by_pillar.get(Pillar.HEALTH)
        procrastination = by_pillar.get(Pillar.PROCRASTINATION)
        simulator = by_pillar.get(Pillar.SIMULATOR)

        energy = health.score if health else 7.0
        mood = health.score if health else 7.0
        if procrastination and procrastination.score >= 7:
            productivity = Productivity.HIGH
        elif procrastination and procrastination.score >= 5:
            productivity = Productivity.MEDIUM
        else:
            productivity = Productivity.LOW

        risks: list[str] = []
        opportunities: list[str] = []
        if energy < 6:
            risks.append("Low energy - burnout risk")
        if mood < 5:
            risks.append("Low mood - postpone big decisions")
        if productivity == Productivity.LOW:
            risks.append("High procrastination")
        if energy >= 8:
            opportunities.append("High energy - tackle big tasks")
        if mood >= 8:
            opportunities.append("Great mood - make important decisions")

        return WeekForecast(
            energy=energy,
            mood=mood,
            productivity=productivity,
            career=simulator.trend if simulator else Trend.STABLE,
            risks=risks,
            opportunities=opportunities,
        )

    @staticmethod
    def choose_headline(
        overall_score: float,
        weekly_change: float,
        pillar_health: Sequence[PillarHealth],
    ) -> str:
        """Pick a coach message; the choice is a pure function of the inputs."""
        critical = sum(
            1 for h in pillar_health
            if h.measured and h.status == HealthStatus.CRITICAL
        )
        if critical >= 2:
            category = "burnout_risk"
        elif overall_score >= SCORE_THRESHOLDS["excellent"]:
            category = "high_score"
        elif weekly_change > 0:
            category = "improving"
        elif weekly_change < 0:
            category = "declining"
        elif overall_score >= SCORE_THRESHOLDS["good"]:
            category = "high_score"
        else:
            category = "declining"
        messages = COACH_MESSAGES[category]
        return messages[int(round(overall_score * 10)) % len(messages)]
