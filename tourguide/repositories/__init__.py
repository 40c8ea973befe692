"""
Repository layer.
"""

from tourguide.repositories.base_repository import BaseRepository
from tourguide.repositories.booking_repository import BookingRepository
from tourguide.repositories.location_repository import LocationRepository
from tourguide.repositories.message_repository import MessageRepository
from tourguide.repositories.review_repository import ReviewRepository
from tourguide.repositories.user_repository import (
    GuideRepository,
    TouristRepository,
    TourRepository,
    UserRepository,
)

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "GuideRepository",
    "LocationRepository",
    "MessageRepository",
    "ReviewRepository",
    "TouristRepository",
    "TourRepository",
    "UserRepository",
]
