"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from fnmatch import fnmatchcase

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from marketfeed.api.dependencies.feed import get_feed_service
from marketfeed.api.main import app
from marketfeed.core.config import Settings
from marketfeed.core.logging import clear_contextvars, clear_correlation_id
from marketfeed.personalization.cache import FeedCache
from marketfeed.personalization.schemas import ExtractedProfile, FeedMarket, TradeRecord
from marketfeed.personalization.service import FeedService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeFeedRepository:
    """In-memory ``FeedRepository`` with the same query semantics as the SQL one."""

    def __init__(self) -> None:
        self.markets: list[FeedMarket] = []
        self.balances: dict[str, float] = {}
        self.trades: dict[str, list[TradeRecord]] = {}
        self.snapshots: dict[str, ExtractedProfile] = {}
        self.fail_with: Exception | None = None
        self.calls: list[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    async def get_open_markets(self, now: datetime, limit: int) -> list[FeedMarket]:
        self._record("get_open_markets")
        open_markets = [m for m in self.markets if m.closes_at > now]
        open_markets.sort(key=lambda m: (-m.created_at.timestamp(), m.id))
        return open_markets[:limit]

    async def get_user_balance(self, user_id: str) -> float | None:
        self._record("get_user_balance")
        return self.balances.get(user_id)

    async def get_trade_history(self, user_id: str) -> list[TradeRecord]:
        self._record("get_trade_history")
        return sorted(self.trades.get(user_id, []), key=lambda t: t.created_at)

    async def save_profile_snapshot(self, user_id: str, profile: ExtractedProfile) -> None:
        self._record("save_profile_snapshot")
        self.snapshots[user_id] = profile


class StatefulRedisMock:
    """A stateful Redis mock covering the commands the feed cache uses."""

    def __init__(self) -> None:
        self._data: dict[str, str | bytes] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | bytes | None:
        return self._data.get(key)

    async def setex(self, key: str, seconds: int, value: str | bytes) -> bool:
        self._data[key] = value.decode() if isinstance(value, bytes) else value
        self.ttls[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            if key in self._data:
                del self._data[key]
                self.ttls.pop(key, None)
                count += 1
        return count

    async def scan_iter(self, match: str | None = None) -> AsyncIterator[str]:
        for key in list(self._data):
            if match is None or fnmatchcase(key, match):
                yield key

    async def ping(self) -> bool:
        return True

    def keys_snapshot(self) -> set[str]:
        return set(self._data)


@pytest.fixture(autouse=True)
def _clean_logging_context() -> None:
    clear_contextvars()
    clear_correlation_id()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time shared by all pipeline tests."""
    return NOW


@pytest.fixture
def make_market() -> Callable[..., FeedMarket]:
    """Factory for open-market snapshots relative to ``NOW``."""

    def _make(
        market_id: str,
        category: str = "Sport",
        *,
        created_hours_ago: float = 48.0,
        closes_in_days: float = 14.0,
        total_credits: float = 1000.0,
        volume_6h: float = 0.0,
        impressions: int = 0,
    ) -> FeedMarket:
        return FeedMarket(
            id=market_id,
            category=category,
            created_at=NOW - timedelta(hours=created_hours_ago),
            closes_at=NOW + timedelta(days=closes_in_days),
            total_credits=total_credits,
            volume_6h=volume_6h,
            impressions=impressions,
        )

    return _make


@pytest.fixture
def make_trade() -> Callable[..., TradeRecord]:
    """Factory for trade records placed at ``NOW``."""

    def _make(
        category: str = "Sport",
        cost: float = 100.0,
        *,
        closes_in_days: float = 14.0,
        market_age_days: float = 30.0,
    ) -> TradeRecord:
        return TradeRecord(
            cost=cost,
            created_at=NOW,
            market_category=category,
            market_closes_at=NOW + timedelta(days=closes_in_days),
            market_created_at=NOW - timedelta(days=market_age_days),
        )

    return _make


@pytest.fixture
def repository() -> FakeFeedRepository:
    return FakeFeedRepository()


@pytest.fixture
def redis_client() -> StatefulRedisMock:
    return StatefulRedisMock()


@pytest.fixture
def feed_cache(redis_client: StatefulRedisMock) -> FeedCache:
    return FeedCache(redis_client, ttl_seconds=300)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return Settings(feed_default_limit=20, feed_max_limit=50, feed_cache_ttl_seconds=300)


@pytest_asyncio.fixture(scope="function")
async def client(
    repository: FakeFeedRepository,
    feed_cache: FeedCache,
    settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """API client whose feed service runs on the in-memory repository."""

    async def override_get_feed_service() -> FeedService:
        return FeedService(repository, cache=feed_cache, settings=settings)  # type: ignore[arg-type]

    app.dependency_overrides[get_feed_service] = override_get_feed_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
