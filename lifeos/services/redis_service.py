"""Redis service for the durable LifeOS key-value backend."""

import dataclasses
import json
import logging
import os
from datetime import date, datetime
from enum import Enum
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class LifeOSJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for LifeOS that handles:
    - objects with ``to_dict()`` (all integration models)
    - dataclasses → dict via dataclasses.asdict()
    - datetime/date → .isoformat()
    - Enum → .value
    - set/tuple → list
    """

    def default(self, obj: Any) -> Any:
        """Convert non-serializable objects to JSON-serializable types."""
        to_dict = getattr(obj, "to_dict", None)
        if callable(to_dict):
            return to_dict()

        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)

        if isinstance(obj, (datetime, date)):
            return obj.isoformat()

        if isinstance(obj, Enum):
            return obj.value

        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)

        return super().default(obj)


class RedisService:
    """Thin async Redis wrapper storing plain string values."""

    def __init__(self, redis_url: str | None = None) -> None:
        """
        Initialize Redis connection settings.

        Args:
            redis_url: Connection URL (falls back to REDIS_URL, then localhost)
        """
        self._redis_url = redis_url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self._client: redis.Redis | None = None

    @staticmethod
    def _tls_kwargs(redis_url: str) -> dict[str, Any]:
        """Build TLS keyword arguments when using rediss:// URLs."""
        import ssl

        if not redis_url.startswith("rediss://"):
            return {}

        cert_path = os.environ.get("REDIS_TLS_CERT_PATH")
        if cert_path:
            ssl_ctx = ssl.create_default_context(cafile=cert_path)
        else:
            ssl_ctx = ssl.create_default_context()
        ssl_ctx.check_hostname = True
        ssl_ctx.verify_mode = ssl.CERT_REQUIRED
        return {"ssl": ssl_ctx}

    async def _ensure_async_client(self) -> redis.Redis | None:
        """Get or create async Redis client. None when Redis is unreachable."""
        if self._client is None:
            try:
                tls = self._tls_kwargs(self._redis_url)
                client = redis.from_url(  # type: ignore[no-untyped-call]
                    self._redis_url,
                    decode_responses=True,
                    **tls,
                )
                await client.ping()
                self._client = client
            except (redis.ConnectionError, OSError) as exc:
                logger.warning("Redis unavailable at %s: %s", self._redis_url, exc)
                self._client = None
        return self._client

    async def is_available(self) -> bool:
        """Check (and establish) the connection."""
        return await self._ensure_async_client() is not None

    async def get(self, key: str) -> str | None:
        """Get value by key."""
        client = await self._ensure_async_client()
        if client is None:
            return None
        result = await client.get(key)
        return str(result) if result is not None else None

    async def set(self, key: str, value: str) -> bool:
        """Set key to a string value."""
        client = await self._ensure_async_client()
        if client is None:
            return False
        return bool(await client.set(key, value))

    async def delete(self, key: str) -> bool:
        """Delete key."""
        client = await self._ensure_async_client()
        if client is None:
            return False
        return bool(await client.delete(key))

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
