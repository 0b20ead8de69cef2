"""Redis cache for computed feeds.

Feeds are cached per user and page size under ``feed:user:{user_id}:{limit}``,
with the user ID percent-encoded so it never contains ``:`` or glob syntax.
Logged-out feeds live under ``feed:anon:{limit}``, a key no user ID can
produce. The cache is best-effort: any Redis or payload error is logged and
reported as a miss, so the feed can always be recomputed from storage.

Examples:
    >>> cache = FeedCache(await get_redis(), ttl_seconds=300)
    >>> entries = await cache.get("user_123", 20)
    >>> if entries is None:
    ...     entries = await service.build_feed("user_123", 20)
    ...     await cache.set("user_123", 20, entries)
"""

from __future__ import annotations

from urllib.parse import quote

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from marketfeed.core.logging import get_logger
from marketfeed.core.metrics import track_cache_result
from marketfeed.personalization.schemas import FeedEntry

logger = get_logger(__name__)

USER_KEY_PREFIX = "feed:user:"
ANONYMOUS_KEY_PREFIX = "feed:anon:"

_entries_adapter: TypeAdapter[list[FeedEntry]] = TypeAdapter(list[FeedEntry])


def _user_namespace(user_id: str) -> str:
    # Only [A-Za-z0-9_.~-] survive quoting, so ":" and "*?[]\\" cannot leak in
    return f"{USER_KEY_PREFIX}{quote(user_id, safe='')}:"


def feed_cache_key(user_id: str | None, limit: int) -> str:
    """Cache key of one user's feed page.

    Examples:
        >>> feed_cache_key("user_123", 20)
        'feed:user:user_123:20'
        >>> feed_cache_key("bob:20", 20)
        'feed:user:bob%3A20:20'
        >>> feed_cache_key(None, 20)
        'feed:anon:20'
    """
    if not user_id:
        return f"{ANONYMOUS_KEY_PREFIX}{limit}"
    return f"{_user_namespace(user_id)}{limit}"


class FeedCache:
    """Best-effort Redis cache of reranked feeds.

    Attributes:
        redis: Redis client instance.
        ttl_seconds: Expiry of every cached feed.
    """

    def __init__(self, redis: Redis, ttl_seconds: int = 300) -> None:
        """Initialize the feed cache.

        Args:
            redis: Redis client instance.
            ttl_seconds: Expiry of cached feeds in seconds.

        Raises:
            ValueError: If ttl_seconds is below 1.
        """
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    async def get(self, user_id: str | None, limit: int) -> list[FeedEntry] | None:
        """Return the cached feed, or None on a miss or any cache error."""
        key = feed_cache_key(user_id, limit)
        try:
            payload = await self.redis.get(key)
        except RedisError as e:
            track_cache_result("error")
            logger.warning("feed_cache_get_failed", cache_key=key, error=str(e))
            return None

        if payload is None:
            track_cache_result("miss")
            logger.debug("feed_cache_miss", cache_key=key)
            return None

        try:
            entries = _entries_adapter.validate_json(payload)
        except PydanticValidationError as e:
            track_cache_result("error")
            logger.warning(
                "feed_cache_payload_invalid",
                cache_key=key,
                error_count=e.error_count(),
            )
            return None

        track_cache_result("hit")
        logger.debug("feed_cache_hit", cache_key=key, count=len(entries))
        return entries

    async def set(self, user_id: str | None, limit: int, entries: list[FeedEntry]) -> None:
        """Store a feed with the configured TTL."""
        key = feed_cache_key(user_id, limit)
        try:
            await self.redis.setex(key, self.ttl_seconds, _entries_adapter.dump_json(entries))
            logger.debug("feed_cached", cache_key=key, ttl=self.ttl_seconds)
        except RedisError as e:
            logger.warning("feed_cache_set_failed", cache_key=key, error=str(e))

    async def invalidate(self, user_id: str) -> int:
        """Drop every cached page size of one user's feed.

        Args:
            user_id: User whose feed changed.

        Returns:
            Number of keys deleted.
        """
        pattern = f"{_user_namespace(user_id)}*"
        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if not keys:
                return 0
            deleted = int(await self.redis.delete(*keys))
        except RedisError as e:
            logger.warning("feed_cache_invalidation_failed", user_id=user_id, error=str(e))
            return 0

        logger.info("feed_cache_invalidated", user_id=user_id, count=deleted)
        return deleted
