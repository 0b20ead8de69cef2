"""Scoring of one market against one user profile.

The score is a fixed-weight sum of five sub-scores, each bounded to [0, 1]:
- category affinity (0.35)
- risk match (0.20)
- horizon match (0.20)
- recency (0.15)
- recent volume (0.10)

Scoring never raises on malformed market data: a factor that cannot be
computed falls to 0 and the rest of the score still counts.

Examples:
    >>> score = score_market_for_user(market, profile)
    >>> pool_score = score_market_for_user(
    ...     market, profile, ScoringOptions(reference_volume=pool_max_volume)
    ... )
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from marketfeed.personalization.schemas import (
    ExtractedProfile,
    FeedMarket,
    PreferredHorizon,
    RiskTolerance,
    ensure_utc,
)

W_CATEGORY = 0.35
W_RISK = 0.20
W_HORIZON = 0.20
W_RECENCY = 0.15
W_VOLUME = 0.10

# Market risk proxy: deep markets are low risk, shallow ones high risk
RISK_LOW_CREDITS = 2000.0
RISK_HIGH_CREDITS = 500.0

HORIZON_SHORT_DAYS = 7
HORIZON_MEDIUM_DAYS = 30

MATCH_EXACT = 1.0
MATCH_ADJACENT = 0.5
MATCH_FAR = 0.2

DEFAULT_MAX_AGE = timedelta(days=30)


@dataclass(frozen=True)
class ScoringOptions:
    """Normalization parameters for a scoring pass.

    Attributes:
        max_age: Age at which the recency sub-score reaches 0.
        reference_volume: Volume mapped to a full volume sub-score. Pass the
            pool maximum when scoring a batch; defaults to the market's own volume.
        now: Reference time; defaults to the current time.
    """

    max_age: timedelta = DEFAULT_MAX_AGE
    reference_volume: float | None = None
    now: datetime | None = None


def _unit(value: float) -> float:
    """Clamp to [0, 1]; NaN and non-numbers become 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def get_market_risk_level(total_credits: float) -> RiskTolerance:
    """Derive market risk from the credits in play."""
    if total_credits >= RISK_LOW_CREDITS:
        return RiskTolerance.LOW
    if total_credits <= RISK_HIGH_CREDITS:
        return RiskTolerance.HIGH
    return RiskTolerance.MEDIUM


def get_market_horizon(closes_at: datetime, now: datetime | None = None) -> PreferredHorizon:
    """Derive market horizon from the days left until close."""
    now = ensure_utc(now) if now else datetime.now(UTC)
    days = max(0.0, (ensure_utc(closes_at) - now).total_seconds() / 86400.0)
    if days < HORIZON_SHORT_DAYS:
        return PreferredHorizon.SHORT
    if days <= HORIZON_MEDIUM_DAYS:
        return PreferredHorizon.MEDIUM
    return PreferredHorizon.LONG


def level_match_score(
    user_level: RiskTolerance | PreferredHorizon,
    market_level: RiskTolerance | PreferredHorizon,
) -> float:
    """1.0 for the same bucket, 0.5 for a neighbouring one, 0.2 otherwise."""
    distance = abs(user_level.rank - market_level.rank)
    if distance == 0:
        return MATCH_EXACT
    if distance == 1:
        return MATCH_ADJACENT
    return MATCH_FAR


def category_score(category: object, preferred_categories: dict[str, float]) -> float:
    """Profile affinity for the market's category, 0 when unknown."""
    if not isinstance(category, str):
        return 0.0
    return _unit(preferred_categories.get(category, 0.0))


def recency_score(created_at: datetime, now: datetime, max_age: timedelta) -> float:
    """Linear decay from 1 (just created) to 0 (``max_age`` or older)."""
    age = (now - ensure_utc(created_at)).total_seconds()
    window = max_age.total_seconds()
    if age <= 0:
        return 1.0
    if window <= 0 or age >= window:
        return 0.0
    return 1.0 - age / window


def volume_score(volume_6h: float, reference_volume: float) -> float:
    """Recent volume relative to a reference volume, capped at 1."""
    if reference_volume <= 0:
        return 0.0
    return _unit(volume_6h / reference_volume)


def score_market_for_user(
    market: FeedMarket,
    profile: ExtractedProfile,
    options: ScoringOptions | None = None,
) -> float:
    """Score how well a market fits a user profile.

    Args:
        market: Market snapshot to score.
        profile: The user's extracted profile.
        options: Normalization parameters, see ``ScoringOptions``.

    Returns:
        Weighted score in [0, 1].
    """
    options = options or ScoringOptions()
    now = ensure_utc(options.now) if options.now else datetime.now(UTC)

    volume = _non_negative(market.volume_6h)
    if options.reference_volume is not None:
        reference = options.reference_volume
    else:
        reference = max(volume, 1.0)

    category = category_score(market.category, profile.preferred_categories)
    risk = level_match_score(
        profile.risk_tolerance, get_market_risk_level(market.total_credits)
    )
    horizon = level_match_score(
        profile.preferred_horizon, get_market_horizon(market.closes_at, now)
    )
    recency = recency_score(market.created_at, now, options.max_age)

    total = (
        W_CATEGORY * category
        + W_RISK * risk
        + W_HORIZON * horizon
        + W_RECENCY * recency
        + W_VOLUME * volume_score(volume, reference)
    )
    return _unit(total)


def _non_negative(value: float) -> float:
    """Volume as a non-negative float, 0 for NaN, negatives and non-numbers."""
    if not isinstance(value, int | float) or math.isnan(value) or value < 0:
        return 0.0
    return float(value)
