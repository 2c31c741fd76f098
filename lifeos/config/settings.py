"""
Engine Settings for LifeOS.

Tunable knobs of the integration engine, validated with pydantic and
loadable from ``LIFEOS_*`` environment variables.

Usage:
    settings = EngineSettings.from_env()
    orchestrator = create_orchestrator(settings)
"""

from __future__ import annotations

import os
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from lifeos.config.constants import MIN_OCCURRENCES, PATTERN_SAMPLE_LIMIT
from lifeos.lib.exceptions import ConfigurationError


class StorageBackend(StrEnum):
    """Where the key-value collections are persisted."""

    MEMORY = "memory"
    REDIS = "redis"
    SQL = "sql"


class CompletionPolicy(StrEnum):
    """What happens to completed actions when recommendations are regenerated."""

    REPLACE = "replace"    # regenerated recommendations start pending
    PRESERVE = "preserve"  # completed actions carry over by rule + action id


class EngineSettings(BaseModel):
    """Validated engine configuration."""

    storage_backend: StorageBackend = StorageBackend.MEMORY
    redis_url: str = "redis://localhost:6379/0"
    database_url: str = "sqlite+aiosqlite:///lifeos.db"
    key_prefix: str = Field(default="lifeos", min_length=1)

    pattern_window_days: float = Field(default=7.0, gt=0)
    min_occurrences: int = Field(default=MIN_OCCURRENCES, ge=1)
    sample_limit: int = Field(default=PATTERN_SAMPLE_LIMIT, ge=1)
    stats_window: int = Field(default=7, ge=1)

    retention_days: int = Field(default=90, ge=1)
    purge_on_refresh: bool = True

    insight_limit: int = Field(default=5, ge=1)
    recommendation_limit: int = Field(default=3, ge=1)
    completion_policy: CompletionPolicy = CompletionPolicy.REPLACE

    @field_validator("key_prefix")
    @classmethod
    def strip_trailing_colon(cls, v: str) -> str:
        """Keys are built as ``<prefix>:<name>``."""
        return v.rstrip(":")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineSettings:
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Validated EngineSettings

        Raises:
            ConfigurationError: If any variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        mapping = {
            "storage_backend": "LIFEOS_STORAGE_BACKEND",
            "redis_url": "REDIS_URL",
            "database_url": "LIFEOS_DATABASE_URL",
            "key_prefix": "LIFEOS_KEY_PREFIX",
            "pattern_window_days": "LIFEOS_PATTERN_WINDOW_DAYS",
            "min_occurrences": "LIFEOS_MIN_OCCURRENCES",
            "sample_limit": "LIFEOS_SAMPLE_LIMIT",
            "stats_window": "LIFEOS_STATS_WINDOW",
            "retention_days": "LIFEOS_RETENTION_DAYS",
            "purge_on_refresh": "LIFEOS_PURGE_ON_REFRESH",
            "insight_limit": "LIFEOS_INSIGHT_LIMIT",
            "recommendation_limit": "LIFEOS_RECOMMENDATION_LIMIT",
            "completion_policy": "LIFEOS_COMPLETION_POLICY",
        }
        values: dict[str, Any] = {
            field: env[var] for field, var in mapping.items() if env.get(var)
        }
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid engine settings: {exc}") from exc
