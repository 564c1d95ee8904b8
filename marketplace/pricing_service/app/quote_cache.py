"""Redis cache of computed quotes."""

from __future__ import annotations

import json
import logging
from contextlib import suppress
from datetime import date
from typing import Any, Protocol

from redis.asyncio import Redis

from .metrics import PRICING_QUOTE_CACHE_EVENTS_TOTAL

logger = logging.getLogger(__name__)


class QuoteCacheProtocol(Protocol):
    async def get(self, accommodation_id: str, revision: int, start: date, end: date) -> dict[str, Any] | None:
        ...

    async def set(
        self, accommodation_id: str, revision: int, start: date, end: date, payload: dict[str, Any]
    ) -> None:
        ...


class QuoteCache:
    """Caches serialized quotes per configuration revision.

    Every configuration or rule change bumps the revision, so entries never
    need explicit invalidation; they age out through the TTL.
    Cache errors are logged and treated as misses.
    """

    def __init__(self, redis: Redis | None, *, ttl_seconds: int, key_prefix: str = "pricing_quote") -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._key_prefix = key_prefix

    @property
    def enabled(self) -> bool:
        return self._redis is not None and self._ttl > 0

    def key(self, accommodation_id: str, revision: int, start: date, end: date) -> str:
        return f"{self._key_prefix}:{accommodation_id}:r{revision}:{start.isoformat()}:{end.isoformat()}"

    async def get(self, accommodation_id: str, revision: int, start: date, end: date) -> dict[str, Any] | None:
        if not self.enabled:
            return None
        key = self.key(accommodation_id, revision, start, end)
        try:
            cached = await self._redis.get(key)
        except Exception as exc:
            logger.warning("Quote cache read failed for %s: %s", key, exc)
            PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="error").inc()
            PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="miss").inc()
            return None
        if not cached:
            PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="miss").inc()
            return None
        try:
            payload = json.loads(cached)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable quote cache entry %s", key)
            with suppress(Exception):
                await self._redis.delete(key)
            PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="miss").inc()
            return None
        PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="hit").inc()
        return payload

    async def set(
        self, accommodation_id: str, revision: int, start: date, end: date, payload: dict[str, Any]
    ) -> None:
        if not self.enabled:
            return
        key = self.key(accommodation_id, revision, start, end)
        try:
            await self._redis.set(key, json.dumps(payload, default=str), ex=self._ttl)
        except Exception as exc:
            logger.warning("Quote cache write failed for %s: %s", key, exc)
            PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="error").inc()
            return
        PRICING_QUOTE_CACHE_EVENTS_TOTAL.labels(event="write").inc()
