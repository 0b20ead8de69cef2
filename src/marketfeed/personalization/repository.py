"""Read-side storage access for the feed pipeline.

``FeedRepository`` is the query contract the pipeline depends on;
``SqlFeedRepository`` implements it on a request-scoped SQLAlchemy
``AsyncSession``. Every storage failure leaves this module as a
``FeedUnavailableError`` so the pipeline never builds a feed out of partial
data.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Concatenate, ParamSpec, Protocol, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketfeed.core.exceptions import FeedUnavailableError
from marketfeed.core.logging import get_logger
from marketfeed.core.retry import STORAGE_RETRY, retry_with_backoff
from marketfeed.models import Event, MarketMetrics, Prediction, User, UserProfileSnapshot
from marketfeed.personalization.schemas import ExtractedProfile, FeedMarket, TradeRecord

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Window of hourly metric buckets summed into "recent" activity
METRICS_WINDOW = timedelta(hours=6)


class FeedRepository(Protocol):
    """Queries consumed by the feed pipeline."""

    async def get_open_markets(self, now: datetime, limit: int) -> list[FeedMarket]:
        """Newest unresolved markets closing after ``now``, with recent activity."""
        ...

    async def get_user_balance(self, user_id: str) -> float | None:
        """Current credit balance, or None if the user does not exist."""
        ...

    async def get_trade_history(self, user_id: str) -> list[TradeRecord]:
        """Every trade of the user, oldest first."""
        ...

    async def save_profile_snapshot(self, user_id: str, profile: ExtractedProfile) -> None:
        """Upsert the persisted copy of a user's profile."""
        ...


def storage_operation(
    name: str,
) -> Callable[
    [Callable[Concatenate[SqlFeedRepository, P], Awaitable[T]]],
    Callable[Concatenate[SqlFeedRepository, P], Awaitable[T]],
]:
    """Retry transient failures, then translate storage errors.

    Args:
        name: Operation name reported in logs and error details.
    """

    def decorator(
        func: Callable[Concatenate[SqlFeedRepository, P], Awaitable[T]],
    ) -> Callable[Concatenate[SqlFeedRepository, P], Awaitable[T]]:
        async def attempt(self: SqlFeedRepository, *args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(self, *args, **kwargs)
            except (OperationalError, InterfaceError):
                # The session transaction is unusable until rolled back
                await self._session.rollback()
                raise

        retrying = retry_with_backoff(STORAGE_RETRY)(attempt)

        @wraps(func)
        async def wrapper(self: SqlFeedRepository, *args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await retrying(self, *args, **kwargs)
            except (SQLAlchemyError, ConnectionError, TimeoutError) as e:
                logger.error(
                    "storage_query_failed",
                    operation=name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise FeedUnavailableError(
                    f"Storage query failed: {name}",
                    operation=name,
                ) from e

        return wrapper

    return decorator


class SqlFeedRepository:
    """``FeedRepository`` backed by the relational store.

    Examples:
        >>> async with get_session_factory()() as session:
        ...     repository = SqlFeedRepository(session)
        ...     markets = await repository.get_open_markets(now, limit=60)
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @storage_operation("get_open_markets")
    async def get_open_markets(self, now: datetime, limit: int) -> list[FeedMarket]:
        recent = (
            select(
                MarketMetrics.event_id.label("event_id"),
                func.sum(MarketMetrics.volume).label("volume_6h"),
                func.sum(MarketMetrics.impressions).label("impressions"),
            )
            .where(MarketMetrics.bucket_hour >= now - METRICS_WINDOW)
            .group_by(MarketMetrics.event_id)
            .subquery()
        )
        stmt = (
            select(
                Event.id,
                Event.category,
                Event.closes_at,
                Event.created_at,
                Event.total_credits,
                Event.b,
                func.coalesce(recent.c.volume_6h, 0.0).label("volume_6h"),
                func.coalesce(recent.c.impressions, 0).label("impressions"),
            )
            .outerjoin(recent, recent.c.event_id == Event.id)
            .where(Event.resolved.is_(False), Event.closes_at > now)
            .order_by(Event.created_at.desc(), Event.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)

        markets: list[FeedMarket] = []
        for row in result.all():
            market = self._to_feed_market(row)
            if market is not None:
                markets.append(market)

        logger.debug("open_markets_loaded", count=len(markets), limit=limit)
        return markets

    @storage_operation("get_user_balance")
    async def get_user_balance(self, user_id: str) -> float | None:
        result = await self._session.execute(
            select(User.credits).where(User.id == user_id)
        )
        credits = result.scalar_one_or_none()
        return None if credits is None else float(credits)

    @storage_operation("get_trade_history")
    async def get_trade_history(self, user_id: str) -> list[TradeRecord]:
        stmt = (
            select(
                Prediction.credits,
                Prediction.created_at,
                Event.category,
                Event.closes_at,
                Event.created_at.label("event_created_at"),
            )
            .join(Event, Prediction.event_id == Event.id)
            .where(Prediction.user_id == user_id)
            .order_by(Prediction.created_at)
        )
        result = await self._session.execute(stmt)
        return [
            TradeRecord(
                cost=float(row.credits or 0.0),
                created_at=row.created_at,
                market_category=row.category or "",
                market_closes_at=row.closes_at,
                market_created_at=row.event_created_at,
            )
            for row in result.all()
        ]

    @storage_operation("save_profile_snapshot")
    async def save_profile_snapshot(self, user_id: str, profile: ExtractedProfile) -> None:
        values: dict[str, Any] = {
            "user_id": user_id,
            "preferred_categories": profile.preferred_categories,
            "risk_tolerance": profile.risk_tolerance.value,
            "preferred_horizon": profile.preferred_horizon.value,
            "novelty_seeking": profile.novelty_seeking,
        }
        stmt = insert(UserProfileSnapshot).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserProfileSnapshot.user_id],
            set_={
                "preferred_categories": stmt.excluded.preferred_categories,
                "risk_tolerance": stmt.excluded.risk_tolerance,
                "preferred_horizon": stmt.excluded.preferred_horizon,
                "novelty_seeking": stmt.excluded.novelty_seeking,
                "updated_at": func.now(),
            },
        )
        await self._session.execute(stmt)
        logger.debug("profile_snapshot_saved", user_id=user_id)

    @staticmethod
    def _to_feed_market(row: Any) -> FeedMarket | None:
        """Map a result row, tolerating missing optional values."""
        try:
            return FeedMarket(
                id=str(row.id),
                category=row.category or "",
                closes_at=row.closes_at,
                created_at=row.created_at,
                total_credits=float(row.total_credits or 0.0),
                b=float(row.b if row.b is not None else 100.0),
                volume_6h=float(row.volume_6h or 0.0),
                impressions=int(row.impressions or 0),
            )
        except (PydanticValidationError, TypeError, ValueError) as e:
            logger.warning("open_market_skipped", event_id=str(row.id), error=str(e))
            return None
