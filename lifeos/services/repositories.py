"""
Typed repositories for LifeOS.

Each entity collection lives under one key of a ``KeyValueStore`` as JSON
text. A repository is the only writer of its key: every read-modify-write
runs under the repository's ``asyncio.Lock``, so two coroutines mutating the
same collection are serialized instead of silently losing an update.

Failure handling:
- Store I/O errors are logged, recorded in the shared ``DegradationLog`` and
  degrade to the empty default. A read-modify-write whose read failed is
  abandoned, so a failed read can never overwrite stored data with nothing.
- A corrupted payload (invalid JSON) is logged and treated as empty; a single
  undecodable record is skipped and the rest of the collection survives.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from lifeos.core.result import DegradationLog
from lifeos.lib.exceptions import SerializationError, StoreError
from lifeos.models.intelligence import DataPoint, Insight, Pattern, Recommendation
from lifeos.services.kv_store import KeyValueStore
from lifeos.services.redis_service import LifeOSJSONEncoder

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_MISSING = object()


class CollectionRepository(Generic[T]):
    """Persists a list of entities under a single key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        decode: Callable[[dict[str, Any]], T],
        degradations: DegradationLog | None = None,
    ) -> None:
        """
        Args:
            store: Backend holding the serialized collection
            key: Store key of this collection
            decode: Builds one entity from its dict form
            degradations: Where locally-handled failures are recorded
        """
        self._store = store
        self._key = key
        self._decode = decode
        self._degradations = degradations
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    async def load(self) -> list[T]:
        """Read the whole collection; empty on failure."""
        items, _ = await self._read()
        return items

    async def save(self, items: list[T]) -> bool:
        """Replace the whole collection."""
        async with self._lock:
            return await self._write(items)

    async def update(self, mutate: Callable[[list[T]], R]) -> R | None:
        """
        Read-modify-write the collection under the key lock.

        ``mutate`` edits the list in place and may return a value, which is
        passed through. Returns None without writing if the read or the
        write failed.
        """
        async with self._lock:
            items, readable = await self._read()
            if not readable:
                return None
            result = mutate(items)
            if not await self._write(items):
                return None
            return result

    async def _read(self) -> tuple[list[T], bool]:
        try:
            raw = await self._store.get(self._key)
        except StoreError as exc:
            self._degrade("read", exc)
            return [], False

        if raw is None:
            return [], True

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._degrade("decode", exc)
            return [], True
        if not isinstance(records, list):
            self._degrade("decode", f"expected a list under {self._key}")
            return [], True

        items: list[T] = []
        for record in records:
            try:
                items.append(self._decode(record))
            except (KeyError, TypeError, ValueError) as exc:
                self._degrade("decode", f"skipped record: {exc!r}")
        return items, True

    async def _write(self, items: list[T]) -> bool:
        try:
            payload = json.dumps(items, cls=LifeOSJSONEncoder)
        except (TypeError, ValueError) as exc:
            self._degrade("encode", SerializationError(f"cannot encode {self._key}: {exc}"))
            return False
        try:
            await self._store.set(self._key, payload)
        except StoreError as exc:
            self._degrade("write", exc)
            return False
        return True

    def _degrade(self, operation: str, error: BaseException | str) -> None:
        logger.warning("Store %s of %s degraded: %s", operation, self._key, error)
        if self._degradations is not None:
            self._degradations.record(self._key, operation, error)


class ValueRepository:
    """Persists one JSON value (a scalar or a small mapping) under a key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        degradations: DegradationLog | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._degradations = degradations
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    async def get(self, default: Any = None) -> Any:
        value = await self._read()
        return default if value is _MISSING or value is None else value

    async def load(self) -> tuple[Any, bool]:
        """
        Returns:
            (value or None, whether the read succeeded)
        """
        value = await self._read()
        if value is _MISSING:
            return None, False
        return value, True

    async def set(self, value: Any) -> bool:
        async with self._lock:
            return await self._write(value)

    async def swap(self, value: Any) -> Any:
        """
        Store ``value`` and return the previous one (None if absent).

        A failed read returns None and leaves the stored value untouched.
        """
        async with self._lock:
            previous = await self._read()
            if previous is _MISSING:
                return None
            await self._write(value)
            return previous

    async def _read(self) -> Any:
        try:
            raw = await self._store.get(self._key)
        except StoreError as exc:
            self._degrade("read", exc)
            return _MISSING
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            self._degrade("decode", exc)
            return None

    async def _write(self, value: Any) -> bool:
        try:
            payload = json.dumps(value, cls=LifeOSJSONEncoder)
        except (TypeError, ValueError) as exc:
            self._degrade("encode", SerializationError(f"cannot encode {self._key}: {exc}"))
            return False
        try:
            await self._store.set(self._key, payload)
        except StoreError as exc:
            self._degrade("write", exc)
            return False
        return True

    def _degrade(self, operation: str, error: BaseException | str) -> None:
        logger.warning("Store %s of %s degraded: %s", operation, self._key, error)
        if self._degradations is not None:
            self._degradations.record(self._key, operation, error)


class Repositories:
    """One repository per persisted entry, sharing a store and a degradation log."""

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = "lifeos",
        degradations: DegradationLog | None = None,
    ) -> None:
        self.store = store
        self.degradations = degradations if degradations is not None else DegradationLog()

        def key(name: str) -> str:
            return f"{key_prefix}:{name}"

        self.data_points: CollectionRepository[DataPoint] = CollectionRepository(
            store, key("data_points"), DataPoint.from_dict, self.degradations
        )
        self.patterns: CollectionRepository[Pattern] = CollectionRepository(
            store, key("patterns"), Pattern.from_dict, self.degradations
        )
        self.insights: CollectionRepository[Insight] = CollectionRepository(
            store, key("insights"), Insight.from_dict, self.degradations
        )
        self.recommendations: CollectionRepository[Recommendation] = CollectionRepository(
            store, key("recommendations"), Recommendation.from_dict, self.degradations
        )
        self.last_overall_score = ValueRepository(
            store, key("last_overall_score"), self.degradations
        )
        self.ingested_events = ValueRepository(
            store, key("ingested_events"), self.degradations
        )
