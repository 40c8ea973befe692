"""
Booking state machine.

Owns every status change of a booking:

    PENDING   -> CONFIRMED  (payment confirmed by webhook)
    PENDING   -> CANCELLED
    CONFIRMED -> STARTED    (assigned guide)
    CONFIRMED -> CANCELLED
    STARTED   -> COMPLETED  (assigned guide)
    STARTED   -> CANCELLED

COMPLETED, CANCELLED and REFUNDED are terminal. Each transition is a
conditional UPDATE on the current status, so concurrent requests against
one booking cannot both win.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from tourguide.core.clock import Clock
from tourguide.core.constants import MIN_BOOKING_DURATION_MINUTES, MIN_MEETING_POINT_LENGTH
from tourguide.core.exceptions import PaymentError
from tourguide.models.booking import Booking
from tourguide.models.enums import (
    CANCELLABLE_STATUSES,
    BookingStatus,
    BookingType,
    UserRole,
)
from tourguide.repositories.booking_repository import BookingRepository
from tourguide.repositories.user_repository import (
    GuideRepository,
    TouristRepository,
    TourRepository,
)
from tourguide.schemas.booking import (
    BookingCreate,
    BookingCreated,
    BookingDetail,
    BookingResponse,
    CancellationResponse,
    PaymentIntentResponse,
)
from tourguide.services.base import (
    BaseService,
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)
from tourguide.services.booking.policy import (
    DEFAULT_COMMISSION_RATE,
    refund_amount,
    refund_tier,
    split_commission,
)
from tourguide.services.notification.notification_service import NotificationService
from tourguide.services.payment.gateway import PaymentGateway, PaymentIntent


def intent_idempotency_key(booking_id: str) -> str:
    return f"booking-{booking_id}-intent"


def refund_idempotency_key(booking_id: str, attempt: int) -> str:
    return f"booking-{booking_id}-refund-{attempt}"


class BookingService(BaseService[Booking, BookingRepository]):
    """
    Booking lifecycle operations.

    Access control lives in each operation: legality depends on who the
    caller is relative to this specific booking, not on role alone.
    """

    def __init__(
        self,
        db_session: Session,
        payment_gateway: PaymentGateway,
        notifications: NotificationService,
        clock: Optional[Clock] = None,
        commission_rate: Decimal = DEFAULT_COMMISSION_RATE,
        currency: str = "gbp",
    ):
        super().__init__(BookingRepository(db_session), db_session, clock)
        self.tourists = TouristRepository(db_session)
        self.guides = GuideRepository(db_session)
        self.tours = TourRepository(db_session)
        self.payment_gateway = payment_gateway
        self.notifications = notifications
        self.commission_rate = commission_rate
        self.currency = currency

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validate_booking_create(self, request: BookingCreate) -> Optional[ServiceError]:
        """
        Validate booking creation request.

        Returns:
            ServiceError if validation fails, None otherwise
        """
        if request.duration is None or request.duration < MIN_BOOKING_DURATION_MINUTES:
            return ServiceError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Duration must be at least {MIN_BOOKING_DURATION_MINUTES} minutes",
                severity=ErrorSeverity.WARNING,
                field="duration",
                details={"duration": request.duration},
            )

        if not request.meeting_point or len(request.meeting_point.strip()) < MIN_MEETING_POINT_LENGTH:
            return ServiceError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Meeting point must be at least {MIN_MEETING_POINT_LENGTH} characters",
                severity=ErrorSeverity.WARNING,
                field="meeting_point",
            )

        if request.total_price is None or request.total_price < 0:
            return ServiceError(
                code=ErrorCode.VALIDATION_ERROR,
                message="Total price cannot be negative",
                severity=ErrorSeverity.WARNING,
                field="total_price",
                details={"total_price": str(request.total_price)},
            )

        if request.type == BookingType.SCHEDULED and request.scheduled_date is None:
            return ServiceError(
                code=ErrorCode.VALIDATION_ERROR,
                message="Scheduled bookings require a scheduled date",
                severity=ErrorSeverity.WARNING,
                field="scheduled_date",
            )

        return None

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_booking(
        self,
        acting_user_id: str,
        request: BookingCreate,
    ) -> ServiceResult[BookingCreated]:
        """
        Create a PENDING booking for the acting tourist and open a payment intent.

        The booking is committed before the payment collaborator is called.
        If the intent cannot be opened the booking stays PENDING and the
        failure carries its id so the intent can be requested again.

        Args:
            acting_user_id: User id of the tourist making the booking
            request: Booking details

        Returns:
            ServiceResult containing the booking and the payment intent
        """
        try:
            validation_error = self._validate_booking_create(request)
            if validation_error:
                return ServiceResult.failure(validation_error)

            tourist = self.tourists.find_by_user_id(acting_user_id)
            if not tourist:
                return ServiceResult.not_found("Tourist profile", acting_user_id)

            guide = self.guides.find_by_id(request.guide_id)
            if not guide:
                return ServiceResult.not_found("Guide", request.guide_id)

            if request.type == BookingType.INSTANT and not guide.is_available:
                return ServiceResult.error_of(
                    ErrorCode.GUIDE_UNAVAILABLE,
                    "Guide is not available for instant booking",
                    details={"guide_id": guide.id},
                )

            if request.tour_id:
                tour = self.tours.find_by_id(request.tour_id)
                if not tour:
                    return ServiceResult.not_found("Tour", request.tour_id)
                if tour.guide_id != guide.id:
                    return ServiceResult.validation_failure(
                        "Tour does not belong to the selected guide",
                        field="tour_id",
                        details={"tour_id": tour.id, "guide_id": guide.id},
                    )

            split = split_commission(request.total_price, self.commission_rate)

            booking = Booking(
                tourist_id=tourist.id,
                guide_id=guide.id,
                tour_id=request.tour_id,
                type=request.type,
                status=BookingStatus.PENDING,
                scheduled_date=request.scheduled_date if request.type == BookingType.SCHEDULED else None,
                duration=request.duration,
                meeting_point=request.meeting_point.strip(),
                total_price=split.total_price,
                commission=split.commission,
                guide_earnings=split.guide_earnings,
            )
            booking = self.repository.create(booking)

            self._log_operation(
                "Booking created",
                booking.id,
                {
                    "booking_id": booking.id,
                    "guide_id": guide.id,
                    "booking_type": request.type.value,
                    "total_price": str(split.total_price),
                },
            )

            for user_id in (tourist.user_id, guide.user_id):
                self.notifications.publish_booking_update(user_id, booking.id, booking.status)

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "create booking")

        try:
            intent = self._open_payment_intent(booking)
        except PaymentError as e:
            return self._payment_failure(e, booking.id, "Booking created but payment intent could not be opened")

        return ServiceResult.success(
            BookingCreated(
                booking=BookingResponse.model_validate(booking),
                payment_intent=self._intent_response(intent),
            ),
            message="Booking created successfully",
        )

    def create_payment_intent(
        self,
        booking_id: str,
        acting_user_id: str,
    ) -> ServiceResult[PaymentIntentResponse]:
        """Re-request the payment intent of a PENDING booking (tourist only)."""
        try:
            booking = self.repository.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)

            if booking.tourist.user_id != acting_user_id:
                return ServiceResult.forbidden("pay for", "booking")

            if booking.status != BookingStatus.PENDING:
                return ServiceResult.error_of(
                    ErrorCode.INVALID_STATE,
                    f"Booking is {booking.status.value}; payment is only possible while PENDING",
                    details={"current_status": booking.status.value},
                )
        except Exception as e:
            return self._handle_exception(e, "load booking for payment", booking_id)

        try:
            intent = self._open_payment_intent(booking)
        except PaymentError as e:
            return self._payment_failure(e, booking.id, "Payment intent could not be opened")

        return ServiceResult.success(self._intent_response(intent))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_booking(
        self,
        booking_id: str,
        acting_user_id: str,
        role: UserRole,
    ) -> ServiceResult[BookingDetail]:
        """Booking with its message thread, for participants and admins."""
        try:
            booking = self.repository.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)

            if not self._can_view(booking, acting_user_id, role):
                return ServiceResult.forbidden("view", "booking")

            return ServiceResult.success(BookingDetail.model_validate(booking))
        except Exception as e:
            return self._handle_exception(e, "get booking", booking_id)

    def list_for_user(self, user_id: str, role: UserRole) -> ServiceResult[List[BookingResponse]]:
        """
        Bookings visible to a user, newest first.

        Tourists and guides see the bookings of their own profile; admins
        see every booking.
        """
        try:
            if role == UserRole.TOURIST:
                tourist = self.tourists.find_by_user_id(user_id)
                if not tourist:
                    return ServiceResult.not_found("Tourist profile", user_id)
                bookings = self.repository.list_for_tourist(tourist.id)
            elif role == UserRole.GUIDE:
                guide = self.guides.find_by_user_id(user_id)
                if not guide:
                    return ServiceResult.not_found("Guide profile", user_id)
                bookings = self.repository.list_for_guide(guide.id)
            elif role == UserRole.ADMIN:
                bookings = self.repository.list_all()
            else:
                raise ValueError(f"Unhandled role: {role!r}")

            return ServiceResult.success([BookingResponse.model_validate(b) for b in bookings])
        except Exception as e:
            return self._handle_exception(e, "list bookings", user_id)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def confirm_payment(self, booking_id: str, payment_reference: str) -> ServiceResult[BookingResponse]:
        """
        PENDING -> CONFIRMED, recording the payment reference.

        Called by the webhook handler after the event has been verified.
        Redelivered webhooks find the booking CONFIRMED and succeed without
        writing or notifying again.

        A payment that lands on a booking already CANCELLED (the tourist
        finished checkout after cancelling) is recorded and refunded by the
        amount set at cancellation; the result is still INVALID_TRANSITION.
        """
        try:
            booking = self.repository.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)

            if booking.status == BookingStatus.CANCELLED:
                return self._refund_late_payment(booking, payment_reference)

            if booking.status == BookingStatus.CONFIRMED:
                self._logger.info(
                    f"Payment for booking {booking_id} already confirmed",
                    extra={"booking_id": booking_id},
                )
                return ServiceResult.success(
                    BookingResponse.model_validate(booking),
                    message="Payment already confirmed",
                )

            changed = self.repository.transition(
                booking_id,
                [BookingStatus.PENDING],
                {"status": BookingStatus.CONFIRMED, "stripe_payment_id": payment_reference},
            )
            if not changed:
                self._rollback()
                current = self.repository.reload(booking_id)
                if current.status == BookingStatus.CONFIRMED:
                    return ServiceResult.success(
                        BookingResponse.model_validate(current),
                        message="Payment already confirmed",
                    )
                if current.status == BookingStatus.CANCELLED:
                    return self._refund_late_payment(current, payment_reference)
                return ServiceResult.invalid_transition(current.status, BookingStatus.CONFIRMED)

            self._commit()
            booking = self.repository.reload(booking_id)
            self._log_operation("Payment confirmed", booking_id, {"booking_id": booking_id})

            for user_id in (booking.tourist.user_id, booking.guide.user_id):
                self.notifications.publish_booking_update(user_id, booking.id, booking.status)

            return ServiceResult.success(BookingResponse.model_validate(booking))
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "confirm payment", booking_id)

    def start_tour(self, booking_id: str, acting_user_id: str) -> ServiceResult[BookingResponse]:
        """CONFIRMED -> STARTED; only the booking's guide."""
        return self._guide_transition(
            booking_id,
            acting_user_id,
            allowed_from=BookingStatus.CONFIRMED,
            target=BookingStatus.STARTED,
            timestamp_field="start_time",
            action="start",
        )

    def complete_tour(self, booking_id: str, acting_user_id: str) -> ServiceResult[BookingResponse]:
        """STARTED -> COMPLETED; only the booking's guide."""
        return self._guide_transition(
            booking_id,
            acting_user_id,
            allowed_from=BookingStatus.STARTED,
            target=BookingStatus.COMPLETED,
            timestamp_field="end_time",
            action="complete",
        )

    def cancel_booking(self, booking_id: str, acting_user_id: str) -> ServiceResult[CancellationResponse]:
        """
        Cancel a booking that has not finished, refunding per policy.

        The status change and the refund happen in one transaction: the
        conditional UPDATE is flushed first, the refund is requested while
        that row is held, and the cancellation is committed only once the
        refund has gone through. A failed refund leaves the booking as it was.

        The UPDATE only matches the status the refund was decided from. If
        another request moved the booking in between (payment confirmed,
        tour started) the cancellation fails and nothing is written.

        Returns:
            ServiceResult with the booking, refund percentage and amount
        """
        try:
            booking = self.repository.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)

            if not booking.is_participant(acting_user_id):
                return ServiceResult.forbidden("cancel", "booking")

            read_status = booking.status
            if read_status not in CANCELLABLE_STATUSES:
                return ServiceResult.invalid_transition(read_status, BookingStatus.CANCELLED)

            now = self.clock.now_utc()
            percentage = refund_tier(booking.scheduled_date, now)
            amount = refund_amount(booking.total_price, percentage)
            payment_reference = booking.stripe_payment_id
            attempt = (booking.refund_attempts or 0) + 1

            changed = self.repository.transition(
                booking_id,
                [read_status],
                {
                    "status": BookingStatus.CANCELLED,
                    "cancelled_at": now,
                    "cancelled_by": acting_user_id,
                    "refund_amount": amount,
                },
            )
            if not changed:
                self._rollback()
                current = self.repository.reload(booking_id)
                self._logger.warning(
                    f"Booking {booking_id} moved from {read_status.value} to "
                    f"{current.status.value} during cancellation",
                    extra={"booking_id": booking_id},
                )
                return ServiceResult.error_of(
                    ErrorCode.INVALID_TRANSITION,
                    f"Booking changed from {read_status.value} to {current.status.value} "
                    f"while cancelling; retry the cancellation",
                    details={
                        "current_status": current.status.value,
                        "target_status": BookingStatus.CANCELLED.value,
                    },
                )

            if payment_reference and amount > 0:
                try:
                    refund = self.payment_gateway.refund(
                        payment_reference,
                        amount,
                        idempotency_key=refund_idempotency_key(booking_id, attempt),
                    )
                except PaymentError as e:
                    self._rollback()
                    self.repository.record_refund_attempt(booking_id)
                    return self._payment_failure(e, booking_id, "Refund failed; booking was not cancelled")

                self.repository.update_fields(booking_id, {"refund_id": refund.refund_id})

            self._commit()
            booking = self.repository.reload(booking_id)

            self._log_operation(
                "Booking cancelled",
                booking_id,
                {
                    "booking_id": booking_id,
                    "refund_percentage": str(percentage),
                    "refund_amount": str(amount),
                },
            )

            self.notifications.publish_booking_update(
                booking.tourist.user_id,
                booking.id,
                booking.status,
                {"refund_percentage": percentage, "refund_amount": amount},
            )
            self.notifications.publish_booking_update(booking.guide.user_id, booking.id, booking.status)

            return ServiceResult.success(
                CancellationResponse(
                    booking=BookingResponse.model_validate(booking),
                    refund_percentage=percentage,
                    refund_amount=amount,
                ),
                message="Booking cancelled",
            )
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "cancel booking", booking_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _guide_transition(
        self,
        booking_id: str,
        acting_user_id: str,
        allowed_from: BookingStatus,
        target: BookingStatus,
        timestamp_field: str,
        action: str,
    ) -> ServiceResult[BookingResponse]:
        try:
            booking = self.repository.find_by_id(booking_id)
            if not booking:
                return ServiceResult.not_found("Booking", booking_id)

            if booking.guide.user_id != acting_user_id:
                return ServiceResult.forbidden(action, "booking")

            changed = self.repository.transition(
                booking_id,
                [allowed_from],
                {"status": target, timestamp_field: self.clock.now_utc()},
            )
            if not changed:
                self._rollback()
                current = self.repository.reload(booking_id)
                return ServiceResult.invalid_transition(current.status, target)

            self._commit()
            booking = self.repository.reload(booking_id)
            self._log_operation(
                f"Booking {target.value.lower()}",
                booking_id,
                {"booking_id": booking_id, "status": target.value},
            )

            self.notifications.publish_booking_update(booking.tourist.user_id, booking.id, booking.status)

            return ServiceResult.success(BookingResponse.model_validate(booking))
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, f"{action} tour", booking_id)

    def _refund_late_payment(self, booking: Booking, payment_reference: Optional[str]) -> ServiceResult:
        rejected = ServiceResult.invalid_transition(booking.status, BookingStatus.CONFIRMED)
        if not payment_reference:
            return rejected

        booking_id = booking.id
        amount = booking.refund_amount or Decimal("0.00")
        attempt = (booking.refund_attempts or 0) + 1

        if not self.repository.attach_late_payment(booking_id, payment_reference):
            # Already holds a payment reference; this is a redelivery
            self._rollback()
            return rejected

        refund_id = None
        if amount > 0:
            try:
                refund = self.payment_gateway.refund(
                    payment_reference,
                    amount,
                    idempotency_key=refund_idempotency_key(booking_id, attempt),
                )
            except PaymentError as e:
                self._rollback()
                self.repository.record_refund_attempt(booking_id)
                return self._payment_failure(e, booking_id, "Refund of payment on cancelled booking failed")
            refund_id = refund.refund_id
            self.repository.update_fields(booking_id, {"refund_id": refund_id})

        self._commit()
        self._logger.warning(
            f"Payment arrived for cancelled booking {booking_id}",
            extra={
                "booking_id": booking_id,
                "refund_amount": str(amount),
                "refund_id": refund_id,
            },
        )
        return rejected

    def _can_view(self, booking: Booking, user_id: str, role: UserRole) -> bool:
        if role == UserRole.ADMIN:
            return True
        elif role == UserRole.TOURIST:
            return booking.tourist.user_id == user_id
        elif role == UserRole.GUIDE:
            return booking.guide.user_id == user_id
        else:
            raise ValueError(f"Unhandled role: {role!r}")

    def _open_payment_intent(self, booking: Booking) -> PaymentIntent:
        intent = self.payment_gateway.create_intent(
            booking.id,
            booking.total_price,
            self.currency,
            idempotency_key=intent_idempotency_key(booking.id),
        )
        self._logger.info(
            f"Payment intent opened for booking {booking.id}",
            extra={"booking_id": booking.id, "intent_id": intent.intent_id},
        )
        return intent

    @staticmethod
    def _intent_response(intent: PaymentIntent) -> PaymentIntentResponse:
        return PaymentIntentResponse(
            intent_id=intent.intent_id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency,
        )

    def _payment_failure(self, error: PaymentError, booking_id: str, message: str) -> ServiceResult:
        self._logger.error(
            f"{message}: {error.message}",
            extra={"booking_id": booking_id, "payment_error": error.error_code.value},
        )
        details = {"booking_id": booking_id}
        details.update({k: v for k, v in error.details.items() if v is not None})
        return ServiceResult.payment_failure(message, details=details)
