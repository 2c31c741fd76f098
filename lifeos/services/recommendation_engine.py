"""
Recommendation Engine for LifeOS.

A small independent rule set evaluated against recent aggregate statistics.
Each rule yields nothing or one fully-formed Recommendation with a fixed
priority, scoring tuple and action checklist.

Every cycle the whole list is regenerated, sorted by priority (descending)
and persisted in full; callers only get the top few. What happens to
actions the user already completed depends on the CompletionPolicy:

- REPLACE: regenerated recommendations start pending again
- PRESERVE: completed flags carry over, matched by rule and action id
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from lifeos.config.constants import (
    AVOIDANCE_ALERT_LEVEL,
    CONTACT_GAP_DAYS,
    RECOMMENDATION_PRIORITIES,
    SLEEP_TARGET_HOURS,
    Pillar,
)
from lifeos.config.settings import CompletionPolicy
from lifeos.models.intelligence import Action, Recommendation, new_id
from lifeos.services.event_store import EventStore, utc_now
from lifeos.services.repositories import CollectionRepository

logger = logging.getLogger(__name__)

RULE_SLEEP = "sleep_improvement"
RULE_PROCRASTINATION = "procrastination_intervention"
RULE_RELATIONSHIPS = "relationship_maintenance"


class RecommendationEngine:
    """
    Generate, persist and track completion of recommendations.

    Usage:
        engine = RecommendationEngine(event_store, repositories.recommendations)
        top = await engine.generate_recommendations()
        await engine.complete_action(top[0].id, top[0].actions[0].id)
    """

    def __init__(
        self,
        event_store: EventStore,
        repository: CollectionRepository[Recommendation],
        limit: int = 3,
        stats_window: int = 7,
        completion_policy: CompletionPolicy = CompletionPolicy.REPLACE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._event_store = event_store
        self._repository = repository
        self._limit = limit
        self._stats_window = stats_window
        self._completion_policy = CompletionPolicy(completion_policy)
        self._clock = clock

    async def generate_recommendations(self) -> list[Recommendation]:
        """
        Evaluate every rule and replace the stored list.

        Returns:
            The highest-priority recommendations, at most ``limit``
        """
        fresh: list[Recommendation] = []
        for rule in (
            self._check_sleep,
            self._check_procrastination,
            self._check_relationships,
        ):
            recommendation = await rule()
            if recommendation is not None:
                fresh.append(recommendation)
        fresh.sort(key=lambda r: r.priority, reverse=True)

        if self._completion_policy == CompletionPolicy.PRESERVE:
            merged = await self._repository.update(lambda existing: _carry_over(existing, fresh))
            if merged is None:
                # Returned ids must exist in the store for complete_action
                logger.warning("Completion state not carried over; storing fresh recommendations")
                await self._repository.save(fresh)
        else:
            await self._repository.save(fresh)

        logger.info(
            "Generated %d recommendations (%s)",
            len(fresh), ", ".join(r.rule for r in fresh) or "none",
        )
        return [r.copy() for r in fresh[: self._limit]]

    async def get_recommendations(self) -> list[Recommendation]:
        """All stored recommendations, not just the top few."""
        return await self._repository.load()

    async def complete_action(self, recommendation_id: str, action_id: str) -> Recommendation | None:
        """
        Mark one action complete.

        ``completed`` on the recommendation flips to True exactly when its
        last open action is completed.

        Returns:
            The updated recommendation, or None if either id is unknown
        """
        def apply(recommendations: list[Recommendation]) -> Recommendation | None:
            for recommendation in recommendations:
                if recommendation.id != recommendation_id:
                    continue
                if not recommendation.complete_action(action_id):
                    return None
                return recommendation.copy()
            return None

        updated = await self._repository.update(apply)
        if updated is None:
            logger.warning(
                "complete_action ignored: no action %s on recommendation %s",
                action_id, recommendation_id,
            )
            return None

        logger.info(
            "Completed %s on %s (%s)", action_id, recommendation_id, updated.state,
        )
        return updated

    # =========================================================================
    # Rules
    # =========================================================================

    async def _check_sleep(self) -> Recommendation | None:
        stats = await self._event_store.aggregate_stats(
            Pillar.HEALTH, "sleep", days=self._stats_window
        )
        if not stats.has_data or stats.avg >= SLEEP_TARGET_HOURS:
            return None

        return self._build(
            rule=RULE_SLEEP,
            title="Improve Sleep Quality",
            description=(
                f"Your sleep ({stats.avg:.1f} hrs avg) impacts procrastination "
                "and decision quality"
            ),
            pillars=[Pillar.HEALTH, Pillar.PROCRASTINATION, Pillar.DECISIONS],
            priority=RECOMMENDATION_PRIORITIES["urgent_high_impact"],
            scores=(8, 9, 3, 0.85),
            actions=[
                Action(
                    id="action_sleep_1",
                    title="Set bedtime alarm for 10:30 PM",
                    pillar=Pillar.HEALTH,
                    description="Consistent bedtime improves sleep quality",
                ),
                Action(
                    id="action_sleep_2",
                    title="No screens 30 min before bed",
                    pillar=Pillar.HEALTH,
                    description="Blue light disrupts sleep",
                ),
            ],
            reasoning=(
                "Historical data shows sleep <7hrs → 3× procrastination rate "
                "and worse decisions"
            ),
        )

    async def _check_procrastination(self) -> Recommendation | None:
        stats = await self._event_store.aggregate_stats(
            Pillar.PROCRASTINATION, "avoidance_rate", days=self._stats_window
        )
        if not stats.has_data or stats.avg <= AVOIDANCE_ALERT_LEVEL:
            return None

        return self._build(
            rule=RULE_PROCRASTINATION,
            title="Break Procrastination Cycle",
            description="High task avoidance detected - time to intervene",
            pillars=[Pillar.PROCRASTINATION, Pillar.HEALTH],
            priority=RECOMMENDATION_PRIORITIES["important_high_impact"],
            scores=(7, 7, 4, 0.75),
            actions=[
                Action(
                    id="action_procrast_1",
                    title="Time-box 25 minutes today",
                    pillar=Pillar.PROCRASTINATION,
                    description="Pomodoro technique breaks resistance",
                ),
                Action(
                    id="action_procrast_2",
                    title="Break task into smaller steps",
                    pillar=Pillar.PROCRASTINATION,
                    description="Reduce overwhelm",
                ),
            ],
            reasoning="Avoidance rate is high. Small wins build momentum.",
        )

    async def _check_relationships(self) -> Recommendation | None:
        # No contact data at all is treated as overdue
        stats = await self._event_store.aggregate_stats(
            Pillar.RELATIONSHIPS, "days_since_contact", days=self._stats_window
        )
        if stats.has_data and stats.avg < CONTACT_GAP_DAYS:
            return None

        return self._build(
            rule=RULE_RELATIONSHIPS,
            title="Relationship Check-In",
            description="Maintain important connections",
            pillars=[Pillar.RELATIONSHIPS],
            priority=RECOMMENDATION_PRIORITIES["important_medium_impact"],
            scores=(6, 5, 2, 0.8),
            actions=[
                Action(
                    id="action_rel_1",
                    title="Schedule call this week",
                    pillar=Pillar.RELATIONSHIPS,
                    description="Stay connected with key people",
                ),
            ],
            reasoning="Regular contact prevents relationship drift",
        )

    def _build(
        self,
        rule: str,
        title: str,
        description: str,
        pillars: list[Pillar],
        priority: int,
        scores: tuple[int, int, int, float],
        actions: list[Action],
        reasoning: str,
    ) -> Recommendation:
        impact, urgency, effort, confidence = scores
        return Recommendation(
            id=new_id(f"rec_{rule}"),
            rule=rule,
            title=title,
            description=description,
            pillars=pillars,
            priority=priority,
            impact=impact,
            urgency=urgency,
            effort=effort,
            confidence=confidence,
            actions=actions,
            reasoning=reasoning,
            created_at=self._clock(),
        )


def _carry_over(existing: list[Recommendation], fresh: list[Recommendation]) -> bool:
    """Copy completion state from ``existing`` into ``fresh`` and store ``fresh``."""
    previous = {r.rule: r for r in existing if r.rule}
    for recommendation in fresh:
        old = previous.get(recommendation.rule)
        if old is None:
            continue
        done = {a.id for a in old.actions if a.completed}
        if not done:
            continue
        recommendation.id = old.id
        for action in recommendation.actions:
            action.completed = action.id in done
        recommendation.completed = all(a.completed for a in recommendation.actions)
    existing[:] = [r.copy() for r in fresh]
    return True
