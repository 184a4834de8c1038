"""Dashboard summary cache.

A ``SummaryCache`` is built once per application (see ``create_app``) and
handed to the alert services that need it. Readers may see a summary up to
``ttl`` seconds old; writers that change open alerts call ``invalidate``.
Without a Redis client every call is a no-op.
"""
import json
import logging
from typing import Any

import redis

from stockwatch.core.config import settings

logger = logging.getLogger(__name__)

DASHBOARD_KEY = "stockwatch:alerts:dashboard"


class SummaryCache:
    def __init__(self, client: redis.Redis | None, ttl: int = 30, key: str = DASHBOARD_KEY):
        self._client = client
        self._ttl = ttl
        self._key = key
        self._stats = {"hits": 0, "misses": 0}

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def get(self) -> dict[str, Any] | None:
        if not self._client:
            return None
        try:
            raw = self._client.get(self._key)
        except redis.RedisError as exc:
            logger.warning("Summary cache read failed: %s", exc)
            return None
        if raw is None:
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return json.loads(raw)

    def set(self, value: dict[str, Any]) -> None:
        if not self._client:
            return
        try:
            self._client.setex(self._key, self._ttl, json.dumps(value, default=str))
        except redis.RedisError:
            logger.debug("Failed to set cache key=%s", self._key)

    def invalidate(self) -> None:
        if not self._client:
            return
        try:
            self._client.delete(self._key)
        except redis.RedisError as exc:
            logger.warning("Summary cache invalidation failed; entry expires in %ss: %s", self._ttl, exc)

    def ping(self) -> bool:
        if not self._client:
            return False
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    def stats(self) -> dict[str, int]:
        """Return basic cache hit/miss counters for instrumentation."""
        return dict(self._stats)


def build_summary_cache(redis_url: str | None = None) -> SummaryCache:
    """Create the cache for one application instance."""
    url = redis_url if redis_url is not None else settings.REDIS_URL
    if not url:
        logger.info("Dashboard summary cache disabled (REDIS_URL not set)")
        return SummaryCache(None)
    client = redis.Redis.from_url(
        url,
        socket_timeout=5,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
        decode_responses=True,  # Return strings instead of bytes
    )
    return SummaryCache(client, ttl=settings.DASHBOARD_CACHE_TTL_SECONDS)
