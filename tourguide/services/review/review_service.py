"""
Reviews and guide rating aggregation.

A booking gets at most one review. The unique constraint on
``reviews.booking_id`` is what enforces that under concurrent submissions;
the lookup beforehand only produces a friendlier failure in the common case.
"""

from typing import Optional

from sqlalchemy.orm import Session

from tourguide.core.clock import Clock
from tourguide.core.constants import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MAX_RATING,
    MAX_REVIEW_COMMENT_LENGTH,
    MIN_RATING,
)
from tourguide.core.exceptions import EntityAlreadyExistsError
from tourguide.models.enums import BookingStatus
from tourguide.models.review import Review
from tourguide.repositories.booking_repository import BookingRepository
from tourguide.repositories.review_repository import ReviewRepository
from tourguide.repositories.user_repository import GuideRepository
from tourguide.schemas.common.pagination import PaginatedResponse
from tourguide.schemas.review import ReviewCreate, ReviewResponse
from tourguide.services.base import BaseService, ErrorCode, ServiceResult


class ReviewService(BaseService[Review, ReviewRepository]):
    """Review creation, lookup and guide rating recomputation."""

    def __init__(self, db_session: Session, clock: Optional[Clock] = None):
        super().__init__(ReviewRepository(db_session), db_session, clock)
        self.bookings = BookingRepository(db_session)
        self.guides = GuideRepository(db_session)

    def create_review(self, acting_user_id: str, request: ReviewCreate) -> ServiceResult[ReviewResponse]:
        """
        Review a COMPLETED booking as its tourist.

        The review insert and the guide's rating update commit together.
        """
        try:
            if request.rating is None or not MIN_RATING <= request.rating <= MAX_RATING:
                return ServiceResult.validation_failure(
                    f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                    field="rating",
                )
            if request.comment is not None and len(request.comment) > MAX_REVIEW_COMMENT_LENGTH:
                return ServiceResult.validation_failure(
                    f"Comment must be at most {MAX_REVIEW_COMMENT_LENGTH} characters",
                    field="comment",
                )

            booking = self.bookings.find_by_id(request.booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", request.booking_id)

            if booking.status != BookingStatus.COMPLETED:
                return ServiceResult.error_of(
                    ErrorCode.INVALID_STATE,
                    "Only completed bookings can be reviewed",
                    details={"current_status": booking.status.value},
                )

            if booking.tourist.user_id != acting_user_id:
                return ServiceResult.forbidden("review", "booking")

            if self.repository.find_by_booking(booking.id):
                return self._duplicate(booking.id)

            review = Review(
                booking_id=booking.id,
                tourist_id=booking.tourist_id,
                guide_id=booking.guide_id,
                rating=request.rating,
                comment=request.comment,
            )
            try:
                self.repository.create(review, commit=False)
            except EntityAlreadyExistsError:
                return self._duplicate(booking.id)

            total, average = self.recompute_guide_rating(booking.guide_id)
            self._commit()

            self._log_operation(
                "Review created",
                review.id,
                {
                    "booking_id": booking.id,
                    "guide_id": booking.guide_id,
                    "average_rating": average,
                    "total_reviews": total,
                },
            )
            return ServiceResult.success(ReviewResponse.model_validate(review))
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "create review", request.booking_id)

    def recompute_guide_rating(self, guide_id: str):
        """
        Rebuild a guide's rating aggregates from all of their reviews.

        Does not commit.

        Returns:
            (total_reviews, average_rating)
        """
        total, average = self.repository.get_rating_summary(guide_id)
        self.guides.set_rating(guide_id, average, total)
        return total, average

    def list_for_guide(
        self,
        guide_id: str,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ServiceResult[PaginatedResponse[ReviewResponse]]:
        """Reviews of a guide, newest first."""
        try:
            if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
                return ServiceResult.validation_failure(
                    f"page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}",
                    details={"page": page, "limit": limit},
                )

            if not self.guides.find_by_id(guide_id):
                return ServiceResult.not_found("Guide", guide_id)

            reviews, total = self.repository.list_for_guide(guide_id, page, limit)
            return ServiceResult.success(
                PaginatedResponse[ReviewResponse].create(
                    [ReviewResponse.model_validate(r) for r in reviews],
                    page=page,
                    limit=limit,
                    total=total,
                )
            )
        except Exception as e:
            return self._handle_exception(e, "list reviews", guide_id)

    def get_for_booking(self, booking_id: str) -> ServiceResult[Optional[ReviewResponse]]:
        """The booking's review, or None when it has not been reviewed."""
        try:
            review = self.repository.find_by_booking(booking_id)
            return ServiceResult.success(ReviewResponse.model_validate(review) if review else None)
        except Exception as e:
            return self._handle_exception(e, "get review for booking", booking_id)

    def get_review(self, review_id: str) -> ServiceResult[ReviewResponse]:
        try:
            review = self.repository.find_by_id(review_id)
            if not review:
                return ServiceResult.not_found("Review", review_id)
            return ServiceResult.success(ReviewResponse.model_validate(review))
        except Exception as e:
            return self._handle_exception(e, "get review", review_id)

    @staticmethod
    def _duplicate(booking_id: str) -> ServiceResult:
        return ServiceResult.error_of(
            ErrorCode.DUPLICATE_REVIEW,
            "This booking has already been reviewed",
            details={"booking_id": booking_id},
        )
