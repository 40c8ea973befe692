"""
Post-tour reviews.

One review per booking is enforced by a unique constraint on
``booking_id`` so that two concurrent submissions cannot both land.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourguide.models.base import TimestampModel

if TYPE_CHECKING:
    from tourguide.models.booking import Booking
    from tourguide.models.user import Guide, Tourist

__all__ = ["Review"]


class Review(TimestampModel):
    """A tourist's rating of a completed booking."""

    __tablename__ = "reviews"

    booking_id: Mapped[str] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        comment="Reviewed booking",
    )
    tourist_id: Mapped[str] = mapped_column(
        ForeignKey("tourists.id", ondelete="CASCADE"),
        nullable=False,
    )
    guide_id: Mapped[str] = mapped_column(
        ForeignKey("guides.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating from 1 to 5",
    )
    comment: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    booking: Mapped["Booking"] = relationship(
        "Booking",
        back_populates="review",
        lazy="select",
    )
    tourist: Mapped["Tourist"] = relationship(
        "Tourist",
        lazy="joined",
    )
    guide: Mapped["Guide"] = relationship(
        "Guide",
        lazy="select",
    )

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_review_booking"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
        Index("ix_review_guide_created", "guide_id", "created_at"),
    )
