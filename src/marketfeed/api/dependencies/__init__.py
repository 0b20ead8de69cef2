"""FastAPI dependencies."""

from marketfeed.api.dependencies.database import get_db
from marketfeed.api.dependencies.feed import (
    get_feed_cache,
    get_feed_service,
    get_optional_user_id,
)

__all__ = [
    "get_db",
    "get_feed_cache",
    "get_feed_service",
    "get_optional_user_id",
]
