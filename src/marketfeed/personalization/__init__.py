"""Personalized market feed pipeline.

Building blocks, from storage up:
- ``repository``: open markets, balances and trade history
- ``profile``: behavioral profile extraction
- ``scoring``: market-to-profile scoring
- ``candidates``: trending / personalized / exploration candidate mix
- ``reranking``: freshness and category diversity
- ``service``: end-to-end feed with caching
- ``refresh``: background profile refresh after trades
"""

from marketfeed.personalization.cache import FeedCache, feed_cache_key
from marketfeed.personalization.candidates import (
    CandidateBatch,
    CandidateGenerator,
    CandidateQuotas,
)
from marketfeed.personalization.profile import ProfileExtractor, build_profile
from marketfeed.personalization.refresh import ProfileRefresher
from marketfeed.personalization.repository import FeedRepository, SqlFeedRepository
from marketfeed.personalization.reranking import rerank_feed
from marketfeed.personalization.schemas import (
    CandidateSource,
    ExtractedProfile,
    FeedCandidate,
    FeedEntry,
    FeedMarket,
    PreferredHorizon,
    RerankableItem,
    RiskTolerance,
    TradeRecord,
)
from marketfeed.personalization.scoring import ScoringOptions, score_market_for_user
from marketfeed.personalization.service import FeedService

__all__ = [
    "CandidateBatch",
    "CandidateGenerator",
    "CandidateQuotas",
    "CandidateSource",
    "ExtractedProfile",
    "FeedCache",
    "FeedCandidate",
    "FeedEntry",
    "FeedMarket",
    "FeedRepository",
    "FeedService",
    "PreferredHorizon",
    "ProfileExtractor",
    "ProfileRefresher",
    "RerankableItem",
    "RiskTolerance",
    "ScoringOptions",
    "SqlFeedRepository",
    "TradeRecord",
    "build_profile",
    "feed_cache_key",
    "rerank_feed",
    "score_market_for_user",
]
