"""SQLAlchemy models."""

from marketfeed.models.base import Base, TimestampMixin
from marketfeed.models.event import Event
from marketfeed.models.market_metrics import MarketMetrics
from marketfeed.models.prediction import Prediction
from marketfeed.models.user import User
from marketfeed.models.user_profile import UserProfileSnapshot

__all__ = [
    "Base",
    "Event",
    "MarketMetrics",
    "Prediction",
    "TimestampMixin",
    "User",
    "UserProfileSnapshot",
]
