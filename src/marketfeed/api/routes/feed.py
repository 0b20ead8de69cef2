"""Personalized feed API routes."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from marketfeed.api.dependencies.feed import get_feed_service, get_optional_user_id
from marketfeed.core.config import Settings, get_settings
from marketfeed.core.logging import get_logger
from marketfeed.personalization.service import FeedService
from marketfeed.schemas.feed import FeedItemResponse, FeedResponse

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/feed",
    response_model=FeedResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "limit out of range"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Storage unavailable, retry later"},
    },
)
async def get_feed(
    service: Annotated[FeedService, Depends(get_feed_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    user_id: Annotated[str | None, Depends(get_optional_user_id)],
    limit: Annotated[int | None, Query(description="Number of feed items")] = None,
) -> FeedResponse:
    """Get the market feed of the requesting user.

    Identified users (``X-User-ID`` header) get a feed mixing trending,
    personalized and exploration markets. Anonymous and cold users get
    trending and exploration markets only.

    Args:
        service: Feed service bound to the request session.
        settings: Application settings.
        user_id: Requesting user, None when anonymous.
        limit: Page size; defaults to ``feed_default_limit``.

    Returns:
        FeedResponse with items in display order.

    Raises:
        InvalidInputError: If limit is outside 1..``feed_max_limit``.
        FeedUnavailableError: If the feed cannot be computed right now.
    """
    page_size = settings.feed_default_limit if limit is None else limit
    logger.info("get_feed_request", user_id=user_id, limit=page_size)

    entries = await service.get_feed(user_id, page_size)

    return FeedResponse(
        user_id=user_id,
        items=[FeedItemResponse.from_entry(entry) for entry in entries],
        generated_at=datetime.now(UTC),
    )
