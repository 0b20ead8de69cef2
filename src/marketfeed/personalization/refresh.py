"""Profile refresh after a user trades.

The trade flow calls ``ProfileRefresher.schedule(user_id)`` once a trade is
committed. The refresh runs in the background on its own session: it
recomputes the profile, upserts the persisted snapshot and drops the user's
cached feeds. It never raises into the caller; failures are only logged.

Examples:
    >>> refresher = ProfileRefresher(get_session_factory(), cache=FeedCache(redis))
    >>> refresher.schedule("user_123")
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketfeed.core.exceptions import MarketFeedException
from marketfeed.core.logging import get_logger
from marketfeed.personalization.cache import FeedCache
from marketfeed.personalization.profile import ProfileExtractor
from marketfeed.personalization.repository import FeedRepository, SqlFeedRepository
from marketfeed.personalization.schemas import ExtractedProfile

logger = get_logger(__name__)


class ProfileRefresher:
    """Recompute and persist user profiles outside the request path."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: FeedCache | None = None,
        repository_factory: Callable[[AsyncSession], FeedRepository] = SqlFeedRepository,
    ) -> None:
        """Initialize the refresher.

        Args:
            session_factory: Factory for sessions independent of any request.
            cache: Feed cache to invalidate, if caching is enabled.
            repository_factory: Builds the repository for a session.
        """
        self._session_factory = session_factory
        self._cache = cache
        self._repository_factory = repository_factory
        self._tasks: set[asyncio.Task[ExtractedProfile | None]] = set()

    @property
    def pending(self) -> int:
        """Number of refreshes still running."""
        return len(self._tasks)

    async def refresh(self, user_id: str) -> ExtractedProfile | None:
        """Recompute one user's profile and store it.

        Args:
            user_id: User who just traded.

        Returns:
            The new profile, or None for unknown users and users without trades.

        Raises:
            FeedUnavailableError: If the storage queries fail.
        """
        async with self._session_factory() as session:
            repository = self._repository_factory(session)
            profile = await ProfileExtractor(repository).compute_profile(user_id)
            if profile is not None:
                await repository.save_profile_snapshot(user_id, profile)
            await session.commit()

        if self._cache is not None:
            await self._cache.invalidate(user_id)

        logger.info("profile_refreshed", user_id=user_id, has_profile=profile is not None)
        return profile

    def schedule(self, user_id: str) -> asyncio.Task[ExtractedProfile | None]:
        """Start a background refresh and return its task.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self._refresh_logged(user_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled refresh to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _refresh_logged(self, user_id: str) -> ExtractedProfile | None:
        try:
            return await self.refresh(user_id)
        except MarketFeedException as e:
            logger.warning(
                "profile_refresh_failed",
                user_id=user_id,
                error_code=e.error_code.value,
                error=e.message,
            )
        except Exception as e:
            logger.exception(
                "profile_refresh_failed",
                user_id=user_id,
                error_type=type(e).__name__,
                error=str(e),
            )
        return None
