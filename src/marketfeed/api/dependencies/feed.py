"""Feed pipeline dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from marketfeed.api.dependencies.database import get_db
from marketfeed.core.config import Settings, get_settings
from marketfeed.core.redis import get_redis
from marketfeed.personalization.cache import FeedCache
from marketfeed.personalization.repository import SqlFeedRepository
from marketfeed.personalization.service import FeedService


async def get_feed_cache(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FeedCache | None:
    """Feed cache, or None when caching is disabled."""
    if not settings.feed_cache_enabled:
        return None
    redis_client = await get_redis()
    return FeedCache(redis_client, ttl_seconds=settings.feed_cache_ttl_seconds)


async def get_feed_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache: Annotated[FeedCache | None, Depends(get_feed_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> FeedService:
    """Feed service bound to the request session."""
    return FeedService(SqlFeedRepository(db), cache=cache, settings=settings)


async def get_optional_user_id(
    x_user_id: Annotated[str | None, Header(max_length=64)] = None,
) -> str | None:
    """Requesting user from the ``X-User-ID`` header; blank means anonymous."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None
