"""Persisted snapshot of a user's extracted profile.

The feed always recomputes profiles from trade history; this table is a
convenience copy written after trades for other consumers.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from marketfeed.models.base import Base


class UserProfileSnapshot(Base):
    """Latest extracted profile of one user."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    preferred_categories: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        default=dict,
        nullable=False,
    )
    risk_tolerance: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )
    preferred_horizon: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )
    novelty_seeking: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
