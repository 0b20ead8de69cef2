"""Feed orchestration: profile, candidates, reranking and caching.

Examples:
    >>> service = FeedService(SqlFeedRepository(session), cache=FeedCache(redis))
    >>> entries = await service.get_feed("user_123", limit=20)
"""

from __future__ import annotations

from datetime import UTC, datetime

from marketfeed.core.config import Settings, get_settings
from marketfeed.core.exceptions import InvalidInputError
from marketfeed.core.logging import get_logger
from marketfeed.core.metrics import track_feed_time
from marketfeed.personalization.cache import FeedCache
from marketfeed.personalization.candidates import CandidateGenerator
from marketfeed.personalization.profile import ProfileExtractor
from marketfeed.personalization.repository import FeedRepository
from marketfeed.personalization.reranking import rerank_feed
from marketfeed.personalization.schemas import FeedEntry, ensure_utc

logger = get_logger(__name__)


class FeedService:
    """Serve personalized feeds, cached when a cache is configured."""

    def __init__(
        self,
        repository: FeedRepository,
        cache: FeedCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._cache = cache
        self._profiles = ProfileExtractor(repository)
        self._candidates = CandidateGenerator(repository)

    async def get_feed(
        self,
        user_id: str | None,
        limit: int,
        now: datetime | None = None,
    ) -> list[FeedEntry]:
        """Return the reranked feed of a user.

        Args:
            user_id: Requesting user, or None for anonymous requests.
            limit: Page size, between 1 and ``feed_max_limit``.
            now: Reference time; defaults to the current time.

        Returns:
            At most ``limit`` feed entries.

        Raises:
            InvalidInputError: If limit is out of range.
            FeedUnavailableError: If storage fails while computing the feed.
        """
        max_limit = self._settings.feed_max_limit
        if not 1 <= limit <= max_limit:
            raise InvalidInputError(
                f"limit must be between 1 and {max_limit}",
                field="limit",
                value=limit,
            )

        if self._cache is not None:
            cached = await self._cache.get(user_id, limit)
            if cached is not None:
                return cached

        entries = await self.build_feed(user_id, limit, now)

        if self._cache is not None:
            await self._cache.set(user_id, limit, entries)
        return entries

    async def build_feed(
        self,
        user_id: str | None,
        limit: int,
        now: datetime | None = None,
    ) -> list[FeedEntry]:
        """Compute a feed from storage, bypassing the cache."""
        now = ensure_utc(now) if now else datetime.now(UTC)
        audience = "personalized" if user_id else "anonymous"

        with track_feed_time(audience):
            # Both steps share the request session, so they run one after the other
            profile = await self._profiles.compute_profile(user_id) if user_id else None
            batch = await self._candidates.generate(profile, limit, now)

            entries = [
                FeedEntry(
                    event_id=candidate.event_id,
                    source=candidate.source,
                    score=candidate.score,
                    category=batch.markets[candidate.event_id].category,
                    created_at=batch.markets[candidate.event_id].created_at,
                )
                for candidate in batch.candidates
            ]
            ranked = rerank_feed(entries, now)

        logger.info(
            "feed_built",
            user_id=user_id,
            limit=limit,
            count=len(ranked),
            personalized=profile is not None,
        )
        return ranked
