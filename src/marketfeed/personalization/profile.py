"""Behavioral profile extraction from trade history.

A profile is recomputed from the user's full trade history every time it is
needed. Users without trades (or unknown users) have no profile and are served
the cold-start mix instead.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import TYPE_CHECKING

from marketfeed.core.logging import get_logger
from marketfeed.personalization.schemas import (
    ExtractedProfile,
    PreferredHorizon,
    RiskTolerance,
    TradeRecord,
)

if TYPE_CHECKING:
    from marketfeed.personalization.repository import FeedRepository

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

HORIZON_SHORT_DAYS = 7
HORIZON_MEDIUM_DAYS = 30

# A market counts as "new" if it was created at most this long before the trade
NEW_MARKET_WINDOW = timedelta(days=7)

RISK_LOW_RATIO = 0.33
RISK_HIGH_RATIO = 0.66


def extract_preferred_categories(category_counts: Mapping[str, int]) -> dict[str, float]:
    """Normalize per-category trade counts by the largest count.

    Args:
        category_counts: Number of trades per category.

    Returns:
        Affinity per category rounded to 2 decimals; the top category maps to 1.
        Categories without trades are left out, so the result is empty when no
        count is positive.

    Examples:
        >>> extract_preferred_categories({"Sport": 5, "Tech": 3, "Politics": 2})
        {'Sport': 1.0, 'Tech': 0.6, 'Politics': 0.4}
        >>> extract_preferred_categories({"Sport": 0})
        {}
    """
    traded = {category: count for category, count in category_counts.items() if count > 0}
    if not traded:
        return {}
    max_count = max(traded.values())
    return {category: round(count / max_count, 2) for category, count in traded.items()}


def extract_risk_tolerance(avg_trade_amount: float, balance: float) -> RiskTolerance:
    """Bucket the average stake relative to the current balance.

    Args:
        avg_trade_amount: Mean credits paid per trade.
        balance: Current credit balance.

    Returns:
        LOW below 0.33, HIGH above 0.66, MEDIUM otherwise (and for balance <= 0).
    """
    if balance <= 0:
        return RiskTolerance.MEDIUM
    ratio = min(1.0, max(0.0, avg_trade_amount / balance))
    if ratio < RISK_LOW_RATIO:
        return RiskTolerance.LOW
    if ratio > RISK_HIGH_RATIO:
        return RiskTolerance.HIGH
    return RiskTolerance.MEDIUM


def extract_preferred_horizon(avg_days_until_close: float) -> PreferredHorizon:
    """Bucket the average days between a trade and its market's close."""
    if avg_days_until_close < HORIZON_SHORT_DAYS:
        return PreferredHorizon.SHORT
    if avg_days_until_close <= HORIZON_MEDIUM_DAYS:
        return PreferredHorizon.MEDIUM
    return PreferredHorizon.LONG


def extract_novelty_seeking(trades_on_new_markets: int, total_trades: int) -> float:
    """Fraction of trades placed on new markets, rounded to 2 decimals."""
    if total_trades == 0:
        return 0.0
    return round(trades_on_new_markets / total_trades, 2)


def build_profile(trades: Iterable[TradeRecord], balance: float) -> ExtractedProfile | None:
    """Derive a profile from a complete trade history.

    Args:
        trades: Every trade of the user.
        balance: The user's current credit balance.

    Returns:
        The extracted profile, or None when there are no trades.
    """
    category_counts: Counter[str] = Counter()
    total_cost = 0.0
    days_sum = 0.0
    trades_on_new_markets = 0
    n = 0

    for trade in trades:
        n += 1
        category_counts[trade.market_category] += 1
        total_cost += trade.cost

        until_close = (trade.market_closes_at - trade.created_at).total_seconds()
        days_sum += max(0.0, until_close / SECONDS_PER_DAY)

        if trade.created_at - trade.market_created_at <= NEW_MARKET_WINDOW:
            trades_on_new_markets += 1

    if n == 0:
        return None

    return ExtractedProfile(
        preferred_categories=extract_preferred_categories(category_counts),
        risk_tolerance=extract_risk_tolerance(total_cost / n, balance),
        preferred_horizon=extract_preferred_horizon(days_sum / n),
        novelty_seeking=extract_novelty_seeking(trades_on_new_markets, n),
    )


class ProfileExtractor:
    """Compute user profiles through a feed repository.

    Examples:
        >>> extractor = ProfileExtractor(repository)
        >>> profile = await extractor.compute_profile("user_123")
    """

    def __init__(self, repository: FeedRepository) -> None:
        self._repository = repository

    async def compute_profile(self, user_id: str) -> ExtractedProfile | None:
        """Build the profile of one user from storage.

        Args:
            user_id: User identifier.

        Returns:
            The profile, or None for unknown users and users without trades.

        Raises:
            FeedUnavailableError: If the storage queries fail.
        """
        balance = await self._repository.get_user_balance(user_id)
        if balance is None:
            logger.info("profile_user_not_found", user_id=user_id)
            return None

        trades = await self._repository.get_trade_history(user_id)
        profile = build_profile(trades, balance)
        if profile is None:
            logger.info("profile_cold_user", user_id=user_id)
            return None

        logger.debug(
            "profile_computed",
            user_id=user_id,
            num_trades=len(trades),
            categories=len(profile.preferred_categories),
            risk_tolerance=profile.risk_tolerance.value,
            preferred_horizon=profile.preferred_horizon.value,
            novelty_seeking=profile.novelty_seeking,
        )
        return profile
