"""
Booking model: the central aggregate of the marketplace.

Rows are only ever mutated by the booking service. Cancellation is a
status transition; bookings are never deleted.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourguide.models.base import TimestampModel
from tourguide.models.enums import BookingStatus, BookingType

if TYPE_CHECKING:
    from tourguide.models.location import LocationUpdate
    from tourguide.models.message import Message
    from tourguide.models.review import Review
    from tourguide.models.user import Guide, Tour, Tourist

__all__ = ["Booking"]


class Booking(TimestampModel):
    """
    A tourist's booking of a guide.

    Attributes:
        tourist_id: Tourist profile making the booking
        guide_id: Guide profile being booked
        tour_id: Optional tour offering (ad-hoc bookings have none)
        type: INSTANT or SCHEDULED
        status: Lifecycle state
        scheduled_date: Tour date for SCHEDULED bookings
        start_time: Set when the guide starts the tour
        end_time: Set when the guide completes the tour
        duration: Minutes, at least 30
        meeting_point: Free text meeting location
        total_price: Amount charged to the tourist
        commission: Platform share of total_price
        guide_earnings: total_price minus commission
        stripe_payment_id: Payment collaborator reference once confirmed
        cancelled_at: When the booking was cancelled
        cancelled_by: User who cancelled
        refund_amount: Amount refunded on cancellation
        refund_id: Refund reference from the payment collaborator
        refund_attempts: Failed refund calls so far
    """

    __tablename__ = "bookings"

    tourist_id: Mapped[str] = mapped_column(
        ForeignKey("tourists.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Tourist making the booking",
    )
    guide_id: Mapped[str] = mapped_column(
        ForeignKey("guides.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Guide being booked",
    )
    tour_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("tours.id", ondelete="SET NULL"),
        nullable=True,
        comment="Tour offering, if any",
    )

    type: Mapped[BookingType] = mapped_column(
        Enum(BookingType),
        nullable=False,
        comment="INSTANT or SCHEDULED",
    )
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
        comment="Current booking status",
    )

    scheduled_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Scheduled tour date",
    )
    start_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the tour started",
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the tour completed",
    )

    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Duration in minutes",
    )
    meeting_point: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    # Pricing (precision: 10, scale: 2)
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    commission: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    guide_earnings: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )

    stripe_payment_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Payment collaborator reference",
    )

    # Cancellation details
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    cancelled_by: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
    )
    refund_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Payment collaborator refund reference",
    )
    refund_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Failed refund calls, used to key the next attempt",
    )

    # Relationships
    tourist: Mapped["Tourist"] = relationship(
        "Tourist",
        back_populates="bookings",
        lazy="joined",
    )
    guide: Mapped["Guide"] = relationship(
        "Guide",
        back_populates="bookings",
        lazy="joined",
    )
    tour: Mapped[Optional["Tour"]] = relationship(
        "Tour",
        lazy="select",
    )
    messages: Mapped[List["Message"]] = relationship(
        "Message",
        back_populates="booking",
        order_by="Message.created_at",
        lazy="select",
    )
    review: Mapped[Optional["Review"]] = relationship(
        "Review",
        back_populates="booking",
        uselist=False,
        lazy="select",
    )
    location_updates: Mapped[List["LocationUpdate"]] = relationship(
        "LocationUpdate",
        back_populates="booking",
        lazy="select",
    )

    __table_args__ = (
        Index("ix_booking_tourist_status", "tourist_id", "status"),
        Index("ix_booking_guide_status", "guide_id", "status"),
        CheckConstraint("duration >= 30", name="ck_booking_min_duration"),
        CheckConstraint("total_price >= 0", name="ck_booking_price_positive"),
        CheckConstraint("commission >= 0", name="ck_booking_commission_positive"),
        CheckConstraint("guide_earnings >= 0", name="ck_booking_earnings_positive"),
    )

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.tourist.user_id, self.guide.user_id)

    def other_participant(self, user_id: str) -> str:
        """User id of the counterpart of ``user_id`` on this booking."""
        if user_id == self.tourist.user_id:
            return self.guide.user_id
        return self.tourist.user_id
