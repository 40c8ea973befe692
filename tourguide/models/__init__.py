"""
ORM models for the tour-guide booking service.
"""

from tourguide.models.base import BaseModel, TimestampModel
from tourguide.models.booking import Booking
from tourguide.models.enums import (
    BookingStatus,
    BookingType,
    NotificationType,
    UserRole,
)
from tourguide.models.location import LocationUpdate
from tourguide.models.message import Message
from tourguide.models.review import Review
from tourguide.models.user import Guide, Tour, Tourist, User

__all__ = [
    "BaseModel",
    "TimestampModel",
    "User",
    "Tourist",
    "Guide",
    "Tour",
    "Booking",
    "Message",
    "Review",
    "LocationUpdate",
    "UserRole",
    "BookingType",
    "BookingStatus",
    "NotificationType",
]
