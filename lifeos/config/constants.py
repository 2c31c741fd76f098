"""
Integration Constants for LifeOS.

Thresholds, weights, the cross-pillar pattern catalog and the text templates
used by the integration engine. Everything here is a fixed table; the
tunable knobs (windows, limits, policies) live in ``lifeos.config.settings``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum


class Pillar(StrEnum):
    """The fixed life domains tracked by the pillar producers."""

    HEALTH = "health"
    PROCRASTINATION = "procrastination"
    DECISIONS = "decisions"
    RELATIONSHIPS = "relationships"
    SIMULATOR = "simulator"  # career simulator


# =============================================================================
# Pattern Mining
# =============================================================================

CORRELATION_THRESHOLDS: dict[str, float] = {
    "weak": 0.3,
    "moderate": 0.5,
    "strong": 0.7,
    "very_strong": 0.85,
}

# Tier -> (min correlation, min occurrences). Ordered from strongest to weakest.
CONFIDENCE_LEVELS: dict[str, tuple[float, int]] = {
    "very_high": (0.85, 12),
    "high": (0.7, 8),
    "medium": (0.5, 5),
    "low": (0.0, 3),
}

PATTERN_TIME_WINDOW = timedelta(days=7)
MIN_OCCURRENCES = 5
PATTERN_SAMPLE_LIMIT = 100

CAUSAL_MAX_GAP = timedelta(hours=24)
PREDICTIVE_MAX_GAP = timedelta(hours=72)


@dataclass(frozen=True)
class PatternDefinition:
    """One entry of the cross-pillar catalog."""

    pillar_a: Pillar
    event_a: str
    pillar_b: Pillar
    event_b: str


CROSS_PILLAR_PATTERNS: tuple[PatternDefinition, ...] = (
    # Raw metrics as emitted by the producers
    PatternDefinition(Pillar.HEALTH, "sleep", Pillar.PROCRASTINATION, "avoidance_rate"),
    PatternDefinition(Pillar.HEALTH, "mood", Pillar.DECISIONS, "decision_quality"),
    # Derived threshold events (see DERIVED_EVENT_RULES)
    PatternDefinition(Pillar.HEALTH, "sleep_low", Pillar.PROCRASTINATION, "procrastination_high"),
    PatternDefinition(Pillar.HEALTH, "sleep_high", Pillar.DECISIONS, "decision_good"),
    PatternDefinition(Pillar.HEALTH, "mood_low", Pillar.DECISIONS, "decision_regret"),
    PatternDefinition(Pillar.HEALTH, "stress_high", Pillar.RELATIONSHIPS, "communication_low"),
    PatternDefinition(Pillar.SIMULATOR, "job_stress_high", Pillar.HEALTH, "health_decline"),
    PatternDefinition(Pillar.SIMULATOR, "relocation", Pillar.RELATIONSHIPS, "relationship_strain"),
    PatternDefinition(Pillar.PROCRASTINATION, "task_avoided", Pillar.DECISIONS, "decision_rushed"),
    PatternDefinition(Pillar.RELATIONSHIPS, "conflict", Pillar.DECISIONS, "decision_quality_low"),
)


@dataclass(frozen=True)
class DerivedEventRule:
    """Emit ``event`` on ``pillar`` whenever ``metric`` crosses ``threshold``."""

    pillar: Pillar
    metric: str
    event: str
    threshold: float
    below: bool  # True: fire when value < threshold, False: when value >= threshold


DERIVED_EVENT_RULES: tuple[DerivedEventRule, ...] = (
    DerivedEventRule(Pillar.HEALTH, "sleep", "sleep_low", 7.0, below=True),
    DerivedEventRule(Pillar.HEALTH, "sleep", "sleep_high", 7.0, below=False),
    DerivedEventRule(Pillar.HEALTH, "mood", "mood_low", 4.5, below=True),
    DerivedEventRule(Pillar.HEALTH, "stress", "stress_high", 7.0, below=False),
    DerivedEventRule(Pillar.PROCRASTINATION, "avoidance_rate", "procrastination_high", 6.0, below=False),
    DerivedEventRule(Pillar.DECISIONS, "decision_quality", "decision_good", 7.0, below=False),
    DerivedEventRule(Pillar.DECISIONS, "decision_quality", "decision_quality_low", 4.5, below=True),
    DerivedEventRule(Pillar.RELATIONSHIPS, "contacts", "communication_low", 1.5, below=True),
    DerivedEventRule(Pillar.SIMULATOR, "job_stress", "job_stress_high", 7.0, below=False),
)


# =============================================================================
# Scoring
# =============================================================================

PILLAR_WEIGHTS: dict[Pillar, float] = {
    Pillar.PROCRASTINATION: 0.15,
    Pillar.DECISIONS: 0.20,
    Pillar.RELATIONSHIPS: 0.25,
    Pillar.HEALTH: 0.25,
    Pillar.SIMULATOR: 0.15,
}

SCORE_THRESHOLDS: dict[str, float] = {
    "excellent": 8.5,
    "good": 7.0,
    "warning": 5.5,
    "critical": 4.0,
}

TREND_THRESHOLD = 0.5

# Pillar -> canonical metric read from the event store.
PILLAR_METRICS: dict[Pillar, str] = {
    Pillar.HEALTH: "mood",
    Pillar.PROCRASTINATION: "avoidance_rate",
    Pillar.DECISIONS: "decision_quality",
}

# Pillars without a metric source in this engine report fixed values.
PLACEHOLDER_PILLAR_HEALTH: dict[Pillar, dict[str, object]] = {
    Pillar.RELATIONSHIPS: {
        "score": 8.0,
        "trend": "stable",
        "status": "excellent",
        "message": "All relationships healthy",
    },
    Pillar.SIMULATOR: {
        "score": 7.2,
        "trend": "improving",
        "status": "good",
        "message": "On good career trajectory",
    },
}


# =============================================================================
# Insights
# =============================================================================

# (keyword in event_a, keyword in event_b) -> suggested actions. First match wins.
INSIGHT_ACTION_TEMPLATES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("sleep", "procrastination", ("Set sleep goal: 7+ hours", "Track sleep-productivity correlation")),
    ("sleep", "avoidance", ("Set sleep goal: 7+ hours", "Track sleep-productivity correlation")),
    ("sleep", "decision", ("Prioritize sleep before big decisions", "Track decision outcomes vs sleep")),
    ("exercise", "mood", ("Maintain exercise streak", "Exercise when feeling low")),
    ("stress", "communication", ("Schedule relationship check-ins during stress", "Set stress alerts")),
    ("job_stress", "health", ("Negotiate work-life balance", "Monitor health metrics during job changes")),
)

INSIGHT_IMPACT_THRESHOLDS: dict[str, float] = {
    "positive": 0.7,
    "negative": 0.3,
}


# =============================================================================
# Recommendations
# =============================================================================

RECOMMENDATION_PRIORITIES: dict[str, int] = {
    "urgent_high_impact": 10,
    "urgent_medium_impact": 8,
    "important_high_impact": 7,
    "important_medium_impact": 5,
    "nice_to_have": 3,
}

SLEEP_TARGET_HOURS = 7.0
AVOIDANCE_ALERT_LEVEL = 5.0
CONTACT_GAP_DAYS = 7.0


# =============================================================================
# Coach Messages
# =============================================================================

COACH_MESSAGES: dict[str, tuple[str, ...]] = {
    "high_score": (
        "You're crushing life right now! All systems firing on all cylinders.",
        "Legendary performance across the board. This is what peak looks like.",
        "Everything's aligned. Keep this momentum going!",
    ),
    "improving": (
        "Upward trajectory detected! You're building something special.",
        "Week-over-week gains. This is how you level up.",
        "The patterns are working. Double down on what's working.",
    ),
    "declining": (
        "Slight dip detected. Let's course-correct before it becomes a pattern.",
        "Something's off. Check the insights - they'll tell you what needs attention.",
        "Not your best week, but you've bounced back from worse. Time to rally.",
    ),
    "burnout_risk": (
        "BURNOUT ALERT: Multiple red flags. Take action NOW.",
        "This pattern led to burnout last time. Break the cycle today.",
        "Your body is screaming for rest. Listen to it.",
    ),
}
