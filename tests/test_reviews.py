"""
Tests — Reviews and guide rating
"""

from decimal import Decimal

import pytest

from tourguide.core.exceptions import EntityAlreadyExistsError
from tourguide.models import Guide, Review
from tourguide.models.enums import BookingStatus, BookingType
from tourguide.schemas.booking import BookingCreate
from tourguide.schemas.review import ReviewCreate
from tourguide.services.base import ErrorCode


def _guide(db_session, guide_id) -> Guide:
    return db_session.get(Guide, guide_id, populate_existing=True)


class TestCreateReview:
    def test_review_updates_guide_rating(self, review_service, make_booking, marketplace, db_session):
        booking_id = make_booking(BookingStatus.COMPLETED)

        result = review_service.create_review(
            marketplace.tourist_user.id,
            ReviewCreate(booking_id=booking_id, rating=4, comment="Knew every alley"),
        )

        assert result.is_success
        assert result.data.guide_id == marketplace.guide.id
        guide = _guide(db_session, marketplace.guide.id)
        assert guide.average_rating == 4.0
        assert guide.total_reviews == 1

    def test_rating_is_mean_of_all_reviews(self, review_service, make_booking, marketplace, db_session):
        for rating in (5, 4, 2):
            booking_id = make_booking(BookingStatus.COMPLETED)
            review_service.create_review(
                marketplace.tourist_user.id,
                ReviewCreate(booking_id=booking_id, rating=rating),
            ).unwrap()

        guide = _guide(db_session, marketplace.guide.id)
        assert guide.total_reviews == 3
        assert guide.average_rating == pytest.approx(11 / 3)

    def test_only_completed_bookings(self, review_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.STARTED)
        result = review_service.create_review(
            marketplace.tourist_user.id,
            ReviewCreate(booking_id=booking_id, rating=5),
        )
        assert result.error_code == ErrorCode.INVALID_STATE

    def test_only_the_booking_tourist(self, review_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.COMPLETED)

        for user in (marketplace.other_tourist_user, marketplace.guide_user):
            result = review_service.create_review(user.id, ReviewCreate(booking_id=booking_id, rating=5))
            assert result.error_code == ErrorCode.FORBIDDEN

    def test_second_review_is_duplicate(self, review_service, make_booking, marketplace, db_session):
        booking_id = make_booking(BookingStatus.COMPLETED)
        review_service.create_review(marketplace.tourist_user.id, ReviewCreate(booking_id=booking_id, rating=5)).unwrap()

        result = review_service.create_review(
            marketplace.tourist_user.id,
            ReviewCreate(booking_id=booking_id, rating=1),
        )

        assert result.error_code == ErrorCode.DUPLICATE_REVIEW
        guide = _guide(db_session, marketplace.guide.id)
        assert guide.total_reviews == 1
        assert guide.average_rating == 5.0

    def test_unique_constraint_backs_the_check(self, review_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.COMPLETED)
        review_service.create_review(marketplace.tourist_user.id, ReviewCreate(booking_id=booking_id, rating=5)).unwrap()

        # Bypass the service lookup, as a racing request would
        with pytest.raises(EntityAlreadyExistsError):
            review_service.repository.create(
                Review(
                    booking_id=booking_id,
                    tourist_id=marketplace.tourist.id,
                    guide_id=marketplace.guide.id,
                    rating=3,
                )
            )

    def test_unknown_booking(self, review_service, marketplace):
        result = review_service.create_review(
            marketplace.tourist_user.id,
            ReviewCreate(booking_id="missing", rating=5),
        )
        assert result.error_code == ErrorCode.NOT_FOUND


class TestReviewQueries:
    def test_list_for_guide_paginates(self, review_service, make_booking, marketplace):
        for rating in (3, 4, 5):
            booking_id = make_booking(BookingStatus.COMPLETED)
            review_service.create_review(
                marketplace.tourist_user.id,
                ReviewCreate(booking_id=booking_id, rating=rating),
            ).unwrap()

        page = review_service.list_for_guide(marketplace.guide.id, page=1, limit=2).data

        assert page.total == 3
        assert page.total_pages == 2
        assert len(page.items) == 2

        last = review_service.list_for_guide(marketplace.guide.id, page=2, limit=2).data
        assert len(last.items) == 1

    def test_list_for_unknown_guide(self, review_service):
        assert review_service.list_for_guide("missing").error_code == ErrorCode.NOT_FOUND

    def test_get_for_booking(self, review_service, make_booking, marketplace):
        booking_id = make_booking(BookingStatus.COMPLETED)
        assert review_service.get_for_booking(booking_id).data is None

        created = review_service.create_review(
            marketplace.tourist_user.id,
            ReviewCreate(booking_id=booking_id, rating=5),
        ).unwrap()

        assert review_service.get_for_booking(booking_id).data.id == created.id
        assert review_service.get_review(created.id).data.rating == 5
        assert review_service.get_review("missing").error_code == ErrorCode.NOT_FOUND


def test_end_to_end_booking_to_review(booking_service, review_service, marketplace, db_session, notification_store):
    tourist_id = marketplace.tourist_user.id
    guide_user_id = marketplace.guide_user.id

    created = booking_service.create_booking(
        tourist_id,
        BookingCreate(
            guide_id=marketplace.guide.id,
            type=BookingType.INSTANT,
            duration=60,
            meeting_point="Harbour clock tower",
            total_price=Decimal("60.00"),
        ),
    ).unwrap()
    booking_id = created.booking.id
    assert created.booking.commission == Decimal("9.00")
    assert created.booking.guide_earnings == Decimal("51.00")

    booking_service.confirm_payment(booking_id, created.payment_intent.intent_id).unwrap()
    booking_service.start_tour(booking_id, guide_user_id).unwrap()
    completed = booking_service.complete_tour(booking_id, guide_user_id).unwrap()
    assert completed.status == BookingStatus.COMPLETED

    review_service.create_review(tourist_id, ReviewCreate(booking_id=booking_id, rating=5)).unwrap()

    guide = _guide(db_session, marketplace.guide.id)
    assert guide.average_rating == 5.0
    assert guide.total_reviews == 1

    duplicate = review_service.create_review(tourist_id, ReviewCreate(booking_id=booking_id, rating=5))
    assert duplicate.error_code == ErrorCode.DUPLICATE_REVIEW

    statuses = [n.payload["status"] for n in notification_store.list(tourist_id)]
    assert statuses == ["PENDING", "CONFIRMED", "STARTED", "COMPLETED"]
