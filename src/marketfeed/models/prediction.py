"""Prediction (trade) model."""

from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Boolean, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketfeed.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from marketfeed.models.event import Event
    from marketfeed.models.user import User


class Prediction(Base, TimestampMixin):
    """One trade: ``credits`` paid by a user on one side of an event."""

    __tablename__ = "predictions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    outcome: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
    )
    credits: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="predictions")
    event: Mapped["Event"] = relationship("Event", back_populates="predictions")

    def __repr__(self) -> str:
        return (
            f"<Prediction(id={self.id}, user_id={self.user_id}, "
            f"event_id={self.event_id}, credits={self.credits})>"
        )
