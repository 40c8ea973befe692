"""
Closed enumerations shared by models, schemas and services.
"""

from enum import Enum


class UserRole(str, Enum):
    """Role supplied by the identity collaborator."""

    TOURIST = "TOURIST"
    GUIDE = "GUIDE"
    ADMIN = "ADMIN"


class BookingType(str, Enum):
    """How a booking is scheduled."""

    INSTANT = "INSTANT"
    SCHEDULED = "SCHEDULED"


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REFUNDED,
})

CANCELLABLE_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.STARTED,
})


class NotificationType(str, Enum):
    """Event kinds carried by the polling fan-out."""

    BOOKING = "booking"
    MESSAGE = "message"
    LOCATION = "location"
