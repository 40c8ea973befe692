"""
Guide location tracking during a running tour.
"""

import math
from typing import List, Optional

from sqlalchemy.orm import Session

from tourguide.core.clock import Clock
from tourguide.core.constants import LOCATION_HISTORY_LIMIT
from tourguide.models.enums import BookingStatus
from tourguide.models.location import LocationUpdate
from tourguide.repositories.booking_repository import BookingRepository
from tourguide.repositories.location_repository import LocationRepository
from tourguide.schemas.location import LocationResponse
from tourguide.services.base import BaseService, ErrorCode, ServiceResult
from tourguide.services.notification.notification_service import NotificationService


def _in_range(value: float, bound: float) -> bool:
    return value is not None and math.isfinite(value) and -bound <= value <= bound


class LocationService(BaseService[LocationUpdate, LocationRepository]):
    """Append-only location samples, recorded only while a tour is STARTED."""

    def __init__(self, db_session: Session, notifications: NotificationService, clock: Optional[Clock] = None):
        super().__init__(LocationRepository(db_session), db_session, clock)
        self.bookings = BookingRepository(db_session)
        self.notifications = notifications

    def record_location(
        self,
        booking_id: str,
        acting_user_id: str,
        latitude: float,
        longitude: float,
    ) -> ServiceResult[LocationResponse]:
        """
        Store the guide's position and push it to the tourist.

        Fails with FORBIDDEN unless the caller is the booking's guide and
        with INVALID_STATE unless the booking is STARTED.
        """
        try:
            if not _in_range(latitude, 90):
                return ServiceResult.validation_failure("Latitude must be between -90 and 90", field="latitude")
            if not _in_range(longitude, 180):
                return ServiceResult.validation_failure("Longitude must be between -180 and 180", field="longitude")

            booking = self.bookings.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)

            if booking.guide.user_id != acting_user_id:
                return ServiceResult.forbidden("update location", "booking")

            if booking.status != BookingStatus.STARTED:
                return ServiceResult.error_of(
                    ErrorCode.INVALID_STATE,
                    "Location can only be shared while the tour is in progress",
                    details={"current_status": booking.status.value},
                )

            update = self.repository.create(
                LocationUpdate(booking_id=booking.id, latitude=latitude, longitude=longitude)
            )

            self.notifications.publish_location(booking.tourist.user_id, booking.id, latitude, longitude)
            return ServiceResult.success(LocationResponse.model_validate(update))
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "record location", booking_id)

    def history(self, booking_id: str, acting_user_id: str) -> ServiceResult[List[LocationResponse]]:
        """Up to the 50 most recent samples, newest first; participants only."""
        try:
            booking = self.bookings.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)
            if not booking.is_participant(acting_user_id):
                return ServiceResult.forbidden("view location of", "booking")

            updates = self.repository.recent_for_booking(booking.id, LOCATION_HISTORY_LIMIT)
            return ServiceResult.success([LocationResponse.model_validate(u) for u in updates])
        except Exception as e:
            return self._handle_exception(e, "get location history", booking_id)
