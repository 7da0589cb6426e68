"""Redis store for short-lived review caches.

Handles:
- JSON caching with TTL policies
- Invalidation after approve/reject

TTL policies:
- Review stats payload: 30-300 seconds (STATS_CACHE_TTL)

The cache is optional. A `Cache` built without a client (Redis disabled or
unreachable at startup) turns every call into a miss / no-op, so the review
endpoints keep working against the database alone.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

# TTL constants (in seconds)
TTL_REVIEW_STATS = 60  # 1 minute

# Key prefixes
PREFIX_REVIEW_STATS = "review:stats:"

logger = logging.getLogger("uvicorn.error")


class Cache:
    """Thin JSON cache over an optional Redis client."""

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client

    @classmethod
    async def connect(cls, url: str) -> "Cache":
        """Create a Redis-backed cache, validating connectivity early."""
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        await client.ping()
        logger.info("Redis connected")
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ============================================================
    # Generic cache operations
    # ============================================================

    async def get_json(self, key: str) -> dict[str, Any] | None:
        """Get JSON value from cache.

        Args:
            key: Cache key.

        Returns:
            Parsed JSON dict or None if not found (or cache unavailable).
        """
        if self._client is None:
            return None
        try:
            value = await self._client.get(key)
        except redis.RedisError:
            logger.warning(f"[cache] get failed key={key}", exc_info=True)
            return None
        if value:
            return json.loads(value)
        return None

    async def set_json(self, key: str, value: dict[str, Any], ttl: int) -> None:
        """Set JSON value in cache with TTL.

        Args:
            key: Cache key.
            value: Dict to cache as JSON.
            ttl: Time-to-live in seconds. Zero disables the write.
        """
        if self._client is None or ttl <= 0:
            return
        try:
            await self._client.setex(key, ttl, json.dumps(value, default=str))
        except redis.RedisError:
            logger.warning(f"[cache] set failed key={key}", exc_info=True)

    async def delete(self, key: str) -> None:
        """Delete value from cache.

        Raises:
            redis.RedisError: If Redis is reachable but the delete fails.
        """
        if self._client is None:
            return
        await self._client.delete(key)


def review_stats_key(kind: str) -> str:
    """Cache key for the review stats of one entity kind."""
    return f"{PREFIX_REVIEW_STATS}{kind}"
