"""
Integration Models for LifeOS.

The entities flowing through one refresh cycle: normalized data points,
discovered cross-pillar patterns, insights, pillar health, recommendations
and the consolidated LifeIntelligence snapshot.

All models serialize to plain dicts with ISO-8601 timestamps (``to_dict``)
and are rebuilt with timezone-aware datetimes (``from_dict``).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from lifeos.config.constants import Pillar


def new_id(prefix: str) -> str:
    """Generate an opaque entity id such as ``dp_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 value; naive timestamps are taken as UTC."""
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# =============================================================================
# Enums
# =============================================================================

class PatternType(StrEnum):
    """How tightly two events follow each other."""

    CAUSAL = "causal"                  # average gap < 24h
    PREDICTIVE = "predictive"          # average gap < 72h
    CORRELATIONAL = "correlational"


class ConfidenceLevel(StrEnum):
    """Confidence tier of a discovered pattern."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_ORDER.index(self)


_CONFIDENCE_ORDER = [
    ConfidenceLevel.LOW,
    ConfidenceLevel.MEDIUM,
    ConfidenceLevel.HIGH,
    ConfidenceLevel.VERY_HIGH,
]


class PatternFeedback(StrEnum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"


class Impact(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Trend(StrEnum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class HealthStatus(StrEnum):
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class Productivity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecommendationState(StrEnum):
    """Recommendation lifecycle. COMPLETE is terminal."""

    PENDING = "pending"
    PARTIALLY_COMPLETE = "partially_complete"
    COMPLETE = "complete"


# =============================================================================
# Event Store
# =============================================================================

@dataclass(frozen=True)
class DataPoint:
    """One immutable, normalized, timestamped observation."""

    id: str
    pillar: Pillar
    type: str
    timestamp: datetime
    value: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pillar": self.pillar.value,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "value": self.value,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DataPoint:
        return cls(
            id=data["id"],
            pillar=Pillar(data["pillar"]),
            type=data["type"],
            timestamp=parse_timestamp(data["timestamp"]),
            value=float(data["value"]),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass(frozen=True)
class AggregateStats:
    """
    Summary of the most recent samples of one metric.

    All-zero values with ``count == 0`` mean "no data", never a measured zero.
    """

    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    trend: float = 0.0
    count: int = 0

    @property
    def has_data(self) -> bool:
        return self.count > 0


# =============================================================================
# Patterns & Insights
# =============================================================================

@dataclass
class Pattern:
    """A cross-pillar co-occurrence relationship, unique by ``key``."""

    id: str
    type: PatternType
    pillar_a: Pillar
    pillar_b: Pillar
    event_a: str
    event_b: str
    correlation: float
    occurrences: int
    confidence: ConfidenceLevel
    strength: float
    description: str
    created_at: datetime
    last_seen: datetime
    user_feedback: PatternFeedback | None = None

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.pillar_a.value, self.pillar_b.value, self.event_a, self.event_b)

    @property
    def score(self) -> float:
        """Ranking score used to pick insights."""
        return self.correlation * self.occurrences

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "pillar_a": self.pillar_a.value,
            "pillar_b": self.pillar_b.value,
            "event_a": self.event_a,
            "event_b": self.event_b,
            "correlation": self.correlation,
            "occurrences": self.occurrences,
            "confidence": self.confidence.value,
            "strength": self.strength,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "user_feedback": self.user_feedback.value if self.user_feedback else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pattern:
        feedback = data.get("user_feedback")
        return cls(
            id=data["id"],
            type=PatternType(data["type"]),
            pillar_a=Pillar(data["pillar_a"]),
            pillar_b=Pillar(data["pillar_b"]),
            event_a=data["event_a"],
            event_b=data["event_b"],
            correlation=float(data["correlation"]),
            occurrences=int(data["occurrences"]),
            confidence=ConfidenceLevel(data["confidence"]),
            strength=float(data.get("strength", data["correlation"])),
            description=data["description"],
            created_at=parse_timestamp(data["created_at"]),
            last_seen=parse_timestamp(data["last_seen"]),
            user_feedback=PatternFeedback(feedback) if feedback else None,
        )


@dataclass
class Insight:
    """Human-facing summary of a pattern. Regenerated every cycle."""

    id: str
    pattern: Pattern
    message: str
    impact: Impact
    actions: list[str]
    score: float
    created_at: datetime
    actionable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern.to_dict(),
            "message": self.message,
            "impact": self.impact.value,
            "actions": list(self.actions),
            "score": self.score,
            "created_at": self.created_at.isoformat(),
            "actionable": self.actionable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Insight:
        return cls(
            id=data["id"],
            pattern=Pattern.from_dict(data["pattern"]),
            message=data["message"],
            impact=Impact(data["impact"]),
            actions=list(data.get("actions") or []),
            score=float(data["score"]),
            created_at=parse_timestamp(data["created_at"]),
            actionable=bool(data.get("actionable", True)),
        )


# =============================================================================
# Scoring
# =============================================================================

@dataclass
class PillarHealth:
    """Per-pillar 0-10 health for one cycle."""

    pillar: Pillar
    score: float
    trend: Trend
    status: HealthStatus
    message: str
    measured: bool = True  # False for placeholders and pillars without data

    def to_dict(self) -> dict[str, Any]:
        return {
            "pillar": self.pillar.value,
            "score": self.score,
            "trend": self.trend.value,
            "status": self.status.value,
            "message": self.message,
            "measured": self.measured,
        }


@dataclass
class WeekForecast:
    """Heuristic projection for the coming week."""

    energy: float
    mood: float
    productivity: Productivity
    career: Trend
    risks: list[str] = field(default_factory=list)
    opportunities: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "energy": self.energy,
            "mood": self.mood,
            "productivity": self.productivity.value,
            "career": self.career.value,
            "risks": list(self.risks),
            "opportunities": list(self.opportunities),
        }


# =============================================================================
# Recommendations
# =============================================================================

@dataclass
class Action:
    """One checklist item of a recommendation."""

    id: str
    title: str
    pillar: Pillar
    description: str
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "pillar": self.pillar.value,
            "description": self.description,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Action:
        return cls(
            id=data["id"],
            title=data["title"],
            pillar=Pillar(data["pillar"]),
            description=data.get("description", ""),
            completed=bool(data.get("completed", False)),
        )


@dataclass
class Recommendation:
    """A prioritized, rule-generated suggestion with a checklist of actions."""

    id: str
    rule: str
    title: str
    description: str
    pillars: list[Pillar]
    priority: int
    impact: int
    urgency: int
    effort: int
    confidence: float
    actions: list[Action]
    reasoning: str
    created_at: datetime
    completed: bool = False

    @property
    def state(self) -> RecommendationState:
        done = sum(1 for action in self.actions if action.completed)
        if self.actions and done == len(self.actions):
            return RecommendationState.COMPLETE
        if done:
            return RecommendationState.PARTIALLY_COMPLETE
        return RecommendationState.PENDING

    def complete_action(self, action_id: str) -> bool:
        """
        Mark one action complete and sync the ``completed`` flag.

        Returns:
            False if no action has that id
        """
        for action in self.actions:
            if action.id == action_id:
                action.completed = True
                self.completed = all(a.completed for a in self.actions)
                return True
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rule": self.rule,
            "title": self.title,
            "description": self.description,
            "pillars": [p.value for p in self.pillars],
            "priority": self.priority,
            "impact": self.impact,
            "urgency": self.urgency,
            "effort": self.effort,
            "confidence": self.confidence,
            "actions": [a.to_dict() for a in self.actions],
            "reasoning": self.reasoning,
            "created_at": self.created_at.isoformat(),
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recommendation:
        actions = [Action.from_dict(a) for a in data.get("actions") or []]
        return cls(
            id=data["id"],
            rule=data.get("rule", ""),
            title=data["title"],
            description=data["description"],
            pillars=[Pillar(p) for p in data.get("pillars") or []],
            priority=int(data["priority"]),
            impact=int(data["impact"]),
            urgency=int(data["urgency"]),
            effort=int(data["effort"]),
            confidence=float(data["confidence"]),
            actions=actions,
            reasoning=data.get("reasoning", ""),
            created_at=parse_timestamp(data["created_at"]),
            completed=bool(actions) and all(a.completed for a in actions),
        )

    def copy(self) -> Recommendation:
        return replace(self, actions=[replace(a) for a in self.actions], pillars=list(self.pillars))


# =============================================================================
# Snapshot
# =============================================================================

@dataclass
class LifeIntelligence:
    """The consolidated output of one refresh cycle."""

    overall_score: float
    weekly_change: float
    top_insight: Insight | None
    pillar_health: list[PillarHealth]
    smart_actions: list[Recommendation]
    week_forecast: WeekForecast
    headline: str
    updated_at: datetime

    def health_for(self, pillar: Pillar) -> PillarHealth | None:
        return next((h for h in self.pillar_health if h.pillar == pillar), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "weekly_change": self.weekly_change,
            "top_insight": self.top_insight.to_dict() if self.top_insight else None,
            "pillar_health": [h.to_dict() for h in self.pillar_health],
            "smart_actions": [r.to_dict() for r in self.smart_actions],
            "week_forecast": self.week_forecast.to_dict(),
            "headline": self.headline,
            "updated_at": self.updated_at.isoformat(),
        }
