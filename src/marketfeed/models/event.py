"""Prediction-market event model."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketfeed.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from marketfeed.models.market_metrics import MarketMetrics
    from marketfeed.models.prediction import Prediction


class Event(Base, TimestampMixin):
    """A binary prediction market.

    Only the fields the feed reads are mapped; pricing state lives with the
    market maker and is treated as opaque here (``b``, ``total_credits``).
    """

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    title: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    closes_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    resolved: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    total_credits: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    b: Mapped[float] = mapped_column(
        Float,
        default=100.0,
        nullable=False,
    )

    predictions: Mapped[list["Prediction"]] = relationship(
        "Prediction",
        back_populates="event",
    )
    metrics: Mapped[list["MarketMetrics"]] = relationship(
        "MarketMetrics",
        back_populates="event",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_events_open", "resolved", "closes_at"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, category={self.category}, resolved={self.resolved})>"
