"""Feed candidate generation.

The candidate list mixes three pools with fixed quotas of the page size:
- trending (40%): recent volume per hour of market age
- personalized (50%): markets scored against the user's profile
- exploration (remainder): category round-robin that favors under-exposed
  categories, so new or niche markets are not starved by the other pools

Without a profile the personalized quota is filled from the trending ranking,
which makes anonymous and cold feeds a trending + exploration mix.

Examples:
    >>> generator = CandidateGenerator(repository)
    >>> candidates = await generator.generate_candidates(profile, limit=20)
    >>> [c.source.value for c in candidates].count("personalized")
    10
"""

from __future__ import annotations

import math
from collections import defaultdict, deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from marketfeed.core.logging import get_logger
from marketfeed.core.metrics import track_candidates
from marketfeed.personalization.repository import FeedRepository
from marketfeed.personalization.schemas import (
    CandidateSource,
    ExtractedProfile,
    FeedCandidate,
    FeedMarket,
    ensure_utc,
)
from marketfeed.personalization.scoring import ScoringOptions, score_market_for_user

logger = get_logger(__name__)

TRENDING_SHARE = 0.40
PERSONALIZED_SHARE = 0.50

# Floor for market age so brand-new markets do not divide by ~0
MIN_AGE_HOURS = 0.1

POOL_SIZE_FACTOR = 3
MIN_POOL_SIZE = 60


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class CandidateQuotas:
    """Number of slots each pool may fill."""

    trending: int
    personalized: int
    exploration: int

    @classmethod
    def for_limit(cls, limit: int) -> CandidateQuotas:
        """Split ``limit`` into quotas that always sum to ``limit``.

        Examples:
            >>> CandidateQuotas.for_limit(20)
            CandidateQuotas(trending=8, personalized=10, exploration=2)
        """
        limit = max(0, limit)
        trending = min(limit, round_half_up(limit * TRENDING_SHARE))
        personalized = min(limit - trending, round_half_up(limit * PERSONALIZED_SHARE))
        return cls(
            trending=trending,
            personalized=personalized,
            exploration=limit - trending - personalized,
        )


@dataclass
class CandidateBatch:
    """Candidates plus the market snapshot they were drawn from."""

    candidates: list[FeedCandidate] = field(default_factory=list)
    markets: dict[str, FeedMarket] = field(default_factory=dict)

    def count(self, source: CandidateSource) -> int:
        return sum(1 for c in self.candidates if c.source == source)


def trend_score(market: FeedMarket, now: datetime) -> float:
    """Recent volume per hour of market age."""
    age_hours = max(MIN_AGE_HOURS, (now - market.created_at).total_seconds() / 3600.0)
    volume = market.volume_6h if market.volume_6h > 0 else 0.0
    return volume / age_hours


def rank_trending(markets: Iterable[FeedMarket], now: datetime) -> list[FeedMarket]:
    """Order markets by trend score, newest first on ties."""
    return sorted(
        markets,
        key=lambda m: (-trend_score(m, now), -m.created_at.timestamp(), m.id),
    )


def select_personalized(
    ranked: Sequence[FeedMarket],
    profile: ExtractedProfile,
    n: int,
    exclude_ids: set[str],
    now: datetime,
) -> list[tuple[FeedMarket, float]]:
    """Top ``n`` not-yet-selected markets by profile score.

    Volume is normalized by the pool maximum so the volume factor actually
    differentiates markets. Equal scores keep trending order.

    Args:
        ranked: The whole pool in trending order.
        profile: The user's profile.
        n: Number of markets to take.
        exclude_ids: Markets already selected by another pool.
        now: Reference time.

    Returns:
        ``(market, score)`` pairs, best first.
    """
    if n <= 0:
        return []
    max_volume = max((m.volume_6h for m in ranked), default=0.0)
    options = ScoringOptions(reference_volume=max(1.0, max_volume), now=now)

    scored = [
        (position, market, score_market_for_user(market, profile, options))
        for position, market in enumerate(ranked)
        if market.id not in exclude_ids
    ]
    scored.sort(key=lambda item: (-item[2], item[0]))
    return [(market, score) for _, market, score in scored[:n]]


def select_exploration(
    markets: Sequence[FeedMarket],
    n: int,
    exclude_ids: set[str],
    represented_categories: set[str],
) -> list[FeedMarket]:
    """Round-robin across categories of the not-yet-selected markets.

    Categories missing from the current selection go first, then categories
    with fewer total impressions. Inside a category the least seen, newest
    market goes first. No randomness, so equal inputs give equal feeds.

    Args:
        markets: The candidate pool.
        n: Number of markets to take.
        exclude_ids: Markets already selected by another pool.
        represented_categories: Categories already present in the selection.

    Returns:
        Up to ``n`` markets.
    """
    if n <= 0:
        return []

    by_category: dict[str, list[FeedMarket]] = defaultdict(list)
    impressions: dict[str, int] = defaultdict(int)
    for market in markets:
        if market.id in exclude_ids:
            continue
        by_category[market.category].append(market)
        impressions[market.category] += max(0, market.impressions)

    category_order = sorted(
        by_category,
        key=lambda c: (c in represented_categories, impressions[c], c),
    )
    queues = [
        deque(
            sorted(
                by_category[category],
                key=lambda m: (m.impressions, -m.created_at.timestamp(), m.id),
            )
        )
        for category in category_order
    ]

    picked: list[FeedMarket] = []
    while len(picked) < n and any(queues):
        for queue in queues:
            if queue and len(picked) < n:
                picked.append(queue.popleft())
    return picked


class CandidateGenerator:
    """Assemble quota-balanced feed candidates from the open-market catalog."""

    def __init__(self, repository: FeedRepository) -> None:
        self._repository = repository

    async def generate_candidates(
        self,
        profile: ExtractedProfile | None,
        limit: int,
        now: datetime | None = None,
    ) -> list[FeedCandidate]:
        """Ordered candidates: trending, then personalized, then exploration.

        Takes a resolved profile rather than a user ID. ``FeedService`` looks
        the user up with ``ProfileExtractor`` first (skipping it for anonymous
        requests), so the generator only needs the market catalog.

        Args:
            profile: The user's profile, or None for anonymous and cold users.
            limit: Maximum number of candidates.
            now: Reference time; defaults to the current time.

        Returns:
            At most ``limit`` candidates with unique event IDs.

        Raises:
            FeedUnavailableError: If the market query fails.
        """
        batch = await self.generate(profile, limit, now)
        return batch.candidates

    async def generate(
        self,
        profile: ExtractedProfile | None,
        limit: int,
        now: datetime | None = None,
    ) -> CandidateBatch:
        """Like ``generate_candidates`` but also returns the market snapshot."""
        if limit <= 0:
            return CandidateBatch()
        now = ensure_utc(now) if now else datetime.now(UTC)

        pool_size = max(limit * POOL_SIZE_FACTOR, MIN_POOL_SIZE)
        loaded = await self._repository.get_open_markets(now, pool_size)
        markets = {m.id: m for m in loaded}
        if not markets:
            logger.info("candidates_empty_catalog", limit=limit)
            return CandidateBatch()

        quotas = CandidateQuotas.for_limit(limit)
        ranked = rank_trending(markets.values(), now)
        candidates: list[FeedCandidate] = []
        selected: set[str] = set()

        for market in ranked[: quotas.trending]:
            candidates.append(FeedCandidate(event_id=market.id, source=CandidateSource.TRENDING))
            selected.add(market.id)

        if profile is not None:
            for market, score in select_personalized(
                ranked, profile, quotas.personalized, selected, now
            ):
                candidates.append(
                    FeedCandidate(
                        event_id=market.id,
                        source=CandidateSource.PERSONALIZED,
                        score=score,
                    )
                )
                selected.add(market.id)
        else:
            fill = [m for m in ranked if m.id not in selected][: quotas.personalized]
            for market in fill:
                candidates.append(
                    FeedCandidate(event_id=market.id, source=CandidateSource.TRENDING)
                )
                selected.add(market.id)

        represented = {markets[event_id].category for event_id in selected}
        for market in select_exploration(ranked, quotas.exploration, selected, represented):
            candidates.append(
                FeedCandidate(event_id=market.id, source=CandidateSource.EXPLORATION)
            )
            selected.add(market.id)

        batch = CandidateBatch(candidates=candidates, markets=markets)
        for source in CandidateSource:
            track_candidates(source.value, batch.count(source))

        logger.info(
            "candidates_generated",
            limit=limit,
            pool_size=len(markets),
            personalized=profile is not None,
            trending=batch.count(CandidateSource.TRENDING),
            personalized_count=batch.count(CandidateSource.PERSONALIZED),
            exploration=batch.count(CandidateSource.EXPLORATION),
        )
        return batch
