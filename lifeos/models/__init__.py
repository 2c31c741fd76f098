"""
Models package for LifeOS.

Usage:
    from lifeos.models import DataPoint, Pattern, Insight, Recommendation
    from lifeos.models import LifeIntelligence, PillarHealth, WeekForecast
"""

from lifeos.models.base import Base
from lifeos.models.intelligence import (
    Action,
    AggregateStats,
    ConfidenceLevel,
    DataPoint,
    HealthStatus,
    Impact,
    Insight,
    LifeIntelligence,
    Pattern,
    PatternFeedback,
    PatternType,
    PillarHealth,
    Productivity,
    Recommendation,
    RecommendationState,
    Trend,
    WeekForecast,
)
from lifeos.models.kv_entry import KeyValueEntry

__all__ = [
    "Action",
    "AggregateStats",
    "Base",
    "ConfidenceLevel",
    "DataPoint",
    "HealthStatus",
    "Impact",
    "Insight",
    "KeyValueEntry",
    "LifeIntelligence",
    "Pattern",
    "PatternFeedback",
    "PatternType",
    "PillarHealth",
    "Productivity",
    "Recommendation",
    "RecommendationState",
    "Trend",
    "WeekForecast",
]
