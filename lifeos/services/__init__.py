"""
Services for LifeOS.

Services:
    - EventStore: Append-only store of normalized data points
    - PatternMiner: Cross-pillar co-occurrence mining
    - IntelligenceEngine: Pillar health, overall score, insights, forecast
    - RecommendationEngine: Rule-based, priority-ranked recommendations
    - PillarIngestor: Producer events into the Event Store, exactly once
    - Key-value backends (memory, Redis, SQL) and typed repositories
"""

from .event_store import EventStore
from .ingestion import IngestionReport, PillarIngestor, PillarProducer, RawEvent
from .intelligence_engine import IntelligenceEngine
from .kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    SQLKeyValueStore,
)
from .pattern_miner import CorrelationResult, PatternMiner
from .recommendation_engine import RecommendationEngine
from .redis_service import LifeOSJSONEncoder, RedisService
from .repositories import CollectionRepository, Repositories, ValueRepository

__all__ = [
    "CollectionRepository",
    "CorrelationResult",
    "EventStore",
    "InMemoryKeyValueStore",
    "IngestionReport",
    "IntelligenceEngine",
    "KeyValueStore",
    "LifeOSJSONEncoder",
    "PatternMiner",
    "PillarIngestor",
    "PillarProducer",
    "RawEvent",
    "RecommendationEngine",
    "RedisKeyValueStore",
    "RedisService",
    "Repositories",
    "SQLKeyValueStore",
    "ValueRepository",
]
