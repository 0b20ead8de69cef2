"""Data model of the feed personalization pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class RiskTolerance(str, Enum):
    """Stake-to-balance bucket of a user, or liquidity bucket of a market."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)


class PreferredHorizon(str, Enum):
    """Bucketed time until a market closes."""

    SHORT = "SHORT"  # < 7 days
    MEDIUM = "MEDIUM"  # 7-30 days
    LONG = "LONG"  # > 30 days

    @property
    def rank(self) -> int:
        return _HORIZON_ORDER.index(self)


_RISK_ORDER = (RiskTolerance.LOW, RiskTolerance.MEDIUM, RiskTolerance.HIGH)
_HORIZON_ORDER = (PreferredHorizon.SHORT, PreferredHorizon.MEDIUM, PreferredHorizon.LONG)


class CandidateSource(str, Enum):
    """Pool a feed candidate was drawn from."""

    TRENDING = "trending"
    PERSONALIZED = "personalized"
    EXPLORATION = "exploration"


class ExtractedProfile(BaseModel):
    """Behavioral profile derived from a user's trade history.

    ``preferred_categories`` maps category to affinity in [0, 1]; whenever it
    is non-empty the most traded category maps to exactly 1.
    """

    model_config = ConfigDict(frozen=True)

    preferred_categories: dict[str, float] = Field(default_factory=dict)
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM
    preferred_horizon: PreferredHorizon = PreferredHorizon.MEDIUM
    novelty_seeking: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("preferred_categories")
    @classmethod
    def validate_affinities(cls, v: dict[str, float]) -> dict[str, float]:
        """Enforce the [0, 1] range and the normalized maximum."""
        for category, weight in v.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(
                    f"Affinity for {category!r} must be between 0.0 and 1.0, got {weight}"
                )
        if v and max(v.values()) != 1.0:
            raise ValueError("The strongest category affinity must equal 1.0")
        return v


class TradeRecord(BaseModel):
    """One historical trade together with the traded market's attributes."""

    model_config = ConfigDict(frozen=True)

    cost: float
    created_at: datetime
    market_category: str
    market_closes_at: datetime
    market_created_at: datetime

    @field_validator("created_at", "market_closes_at", "market_created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class FeedMarket(BaseModel):
    """Read-only snapshot of an open market for one feed computation."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: str
    closes_at: datetime
    created_at: datetime
    total_credits: float = 0.0
    b: float = 100.0
    volume_6h: float = 0.0
    impressions: int = 0

    @field_validator("closes_at", "created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class FeedCandidate(BaseModel):
    """A market picked for the feed and the pool it came from."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    source: CandidateSource
    score: float | None = None


class FeedEntry(FeedCandidate):
    """Candidate enriched with the fields the reranker needs."""

    category: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class RerankableItem(Protocol):
    """Structural shape accepted by the feed reranker."""

    @property
    def event_id(self) -> str: ...

    @property
    def category(self) -> str: ...

    @property
    def created_at(self) -> datetime: ...
