"""Pydantic schemas for API requests and responses."""

from marketfeed.schemas.feed import FeedItemResponse, FeedResponse

__all__ = [
    "FeedItemResponse",
    "FeedResponse",
]
