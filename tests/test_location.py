"""
Tests — Guide location tracking
"""

import pytest

from tourguide.models.enums import BookingStatus, NotificationType
from tourguide.services.base import ErrorCode


class TestRecordLocation:
    def test_guide_shares_location_while_started(self, location_service, make_booking, marketplace, notification_store):
        booking_id = make_booking(BookingStatus.STARTED)

        result = location_service.record_location(booking_id, marketplace.guide_user.id, 51.5007, -0.1246)

        assert result.is_success
        assert result.data.latitude == 51.5007
        pushed = [n for n in notification_store.list(marketplace.tourist_user.id) if n.type == NotificationType.LOCATION]
        assert pushed[-1].payload == {"booking_id": booking_id, "latitude": 51.5007, "longitude": -0.1246}

    @pytest.mark.parametrize(
        "status",
        [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.CANCELLED],
    )
    def test_rejected_outside_started(self, location_service, make_booking, marketplace, status):
        booking_id = make_booking(status)
        result = location_service.record_location(booking_id, marketplace.guide_user.id, 10.0, 10.0)
        assert result.error_code == ErrorCode.INVALID_STATE

    def test_only_the_assigned_guide(self, location_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.STARTED)

        for user in (marketplace.other_guide_user, marketplace.tourist_user):
            result = location_service.record_location(booking_id, user.id, 10.0, 10.0)
            assert result.error_code == ErrorCode.FORBIDDEN

    @pytest.mark.parametrize(
        "latitude, longitude",
        [(90.1, 0.0), (-90.1, 0.0), (0.0, 180.5), (0.0, -180.5), (float("nan"), 0.0)],
    )
    def test_out_of_bounds(self, location_service, make_booking, marketplace, latitude, longitude):
        booking_id = make_booking(BookingStatus.STARTED)
        result = location_service.record_location(booking_id, marketplace.guide_user.id, latitude, longitude)
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_bounds_inclusive(self, location_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.STARTED)
        result = location_service.record_location(booking_id, marketplace.guide_user.id, -90.0, 180.0)
        assert result.is_success

    def test_unknown_booking(self, location_service, marketplace):
        result = location_service.record_location("missing", marketplace.guide_user.id, 0.0, 0.0)
        assert result.error_code == ErrorCode.NOT_FOUND


class TestHistory:
    def test_newest_first_capped_at_fifty(self, location_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.STARTED)
        for i in range(55):
            location_service.record_location(booking_id, marketplace.guide_user.id, float(i), 0.0).unwrap()

        history = location_service.history(booking_id, marketplace.tourist_user.id).data

        assert len(history) == 50
        assert history[0].latitude == 54.0
        assert history[-1].latitude == 5.0

    def test_outsider_cannot_read(self, location_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.STARTED)
        result = location_service.history(booking_id, marketplace.other_tourist_user.id)
        assert result.error_code == ErrorCode.FORBIDDEN
