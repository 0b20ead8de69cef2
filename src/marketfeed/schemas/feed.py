"""Feed API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from marketfeed.personalization.schemas import CandidateSource, FeedEntry


class FeedItemResponse(BaseModel):
    """Response schema for a single feed item."""

    event_id: str = Field(..., description="Market identifier")
    source: CandidateSource = Field(..., description="Pool the market was drawn from")
    score: float | None = Field(
        None,
        ge=0.0,
        le=1.0,
        description="Profile match score (personalized items only)",
    )
    category: str = Field(..., description="Market category")
    created_at: datetime = Field(..., description="When the market was created")

    @classmethod
    def from_entry(cls, entry: FeedEntry) -> FeedItemResponse:
        return cls(
            event_id=entry.event_id,
            source=entry.source,
            score=entry.score,
            category=entry.category,
            created_at=entry.created_at,
        )


class FeedResponse(BaseModel):
    """Response schema for a personalized feed."""

    user_id: str | None = Field(None, description="Requesting user, null when anonymous")
    items: list[FeedItemResponse] = Field(..., description="Feed items in display order")
    generated_at: datetime = Field(..., description="When the response was produced")
