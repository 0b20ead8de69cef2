"""Redis client for the feed cache.

One client (with its own connection pool) is shared by the process and
created on first use. Redis is optional for serving feeds: callers treat
its errors as cache misses, and readiness reports it as degraded only.
"""

import asyncio

from redis.asyncio import Redis
from redis.exceptions import RedisError

from marketfeed.core.config import get_settings
from marketfeed.core.logging import get_logger

logger = get_logger(__name__)

# Readiness probes must answer even when Redis hangs
HEALTH_CHECK_TIMEOUT_SECONDS = 1.0

_client: Redis | None = None


async def get_redis() -> Redis:
    """Shared Redis client, created from ``REDIS_URL`` on first call."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2.0,
            socket_timeout=2.0,
        )
        logger.debug("redis_client_created")
    return _client


async def close_redis() -> None:
    """Release the shared client and its pool."""
    global _client
    if _client is None:
        return
    client, _client = _client, None
    await client.aclose()
    logger.info("redis_client_closed")


async def check_redis_connection() -> bool:
    """Ping Redis within ``HEALTH_CHECK_TIMEOUT_SECONDS``."""
    try:
        client = await get_redis()
        await asyncio.wait_for(client.ping(), timeout=HEALTH_CHECK_TIMEOUT_SECONDS)
    except (RedisError, OSError, TimeoutError) as e:
        logger.warning("redis_health_check_failed", error_type=type(e).__name__, error=str(e))
        return False
    return True
