"""User model."""

from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Float, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketfeed.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from marketfeed.models.prediction import Prediction


class User(Base, TimestampMixin):
    """A trader. ``credits`` is the current spendable balance."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    credits: Mapped[float] = mapped_column(
        Float,
        default=1000.0,
        nullable=False,
    )

    predictions: Mapped[list["Prediction"]] = relationship(
        "Prediction",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
