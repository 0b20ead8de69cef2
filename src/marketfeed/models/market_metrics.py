"""Hourly activity buckets per market.

Rows are written by the hourly analytics aggregation job; the feed only reads
them to derive recent volume and impressions.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketfeed.models.base import Base

if TYPE_CHECKING:
    from marketfeed.models.event import Event


class MarketMetrics(Base):
    """Aggregated activity of one market during one hour."""

    __tablename__ = "market_metrics"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bucket_hour: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    volume: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    impressions: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    clicks: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    event: Mapped["Event"] = relationship("Event", back_populates="metrics")

    __table_args__ = (
        UniqueConstraint("event_id", "bucket_hour", name="uq_market_metrics_event_hour"),
    )
