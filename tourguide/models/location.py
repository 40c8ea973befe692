"""
Guide position samples recorded while a tour is running.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Float, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourguide.models.base import TimestampModel

if TYPE_CHECKING:
    from tourguide.models.booking import Booking

__all__ = ["LocationUpdate"]


class LocationUpdate(TimestampModel):
    """A single latitude/longitude sample for a booking."""

    __tablename__ = "location_updates"

    booking_id: Mapped[str] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
    )
    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )
    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )

    booking: Mapped["Booking"] = relationship(
        "Booking",
        back_populates="location_updates",
        lazy="select",
    )

    __table_args__ = (
        Index("ix_location_booking_created", "booking_id", "created_at"),
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="ck_location_latitude"),
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="ck_location_longitude"),
    )
