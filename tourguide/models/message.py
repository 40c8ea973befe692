"""
Booking-scoped chat messages.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourguide.models.base import TimestampModel

if TYPE_CHECKING:
    from tourguide.models.booking import Booking
    from tourguide.models.user import User

__all__ = ["Message"]


class Message(TimestampModel):
    """A message exchanged between the two participants of a booking."""

    __tablename__ = "messages"

    booking_id: Mapped[str] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        comment="Booking the thread belongs to",
    )
    sender_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Sending user",
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Read by the recipient",
    )

    booking: Mapped["Booking"] = relationship(
        "Booking",
        back_populates="messages",
        lazy="select",
    )
    sender: Mapped["User"] = relationship(
        "User",
        lazy="joined",
    )

    __table_args__ = (
        Index("ix_message_booking_created", "booking_id", "created_at"),
        Index("ix_message_booking_unread", "booking_id", "is_read"),
    )
