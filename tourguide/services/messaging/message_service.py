"""
Booking-scoped messaging between tourist and guide.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from tourguide.core.clock import Clock
from tourguide.core.constants import MAX_MESSAGE_LENGTH
from tourguide.models.message import Message
from tourguide.repositories.booking_repository import BookingRepository
from tourguide.repositories.message_repository import MessageRepository
from tourguide.schemas.message import MarkReadResponse, MessageResponse
from tourguide.services.base import BaseService, ServiceResult
from tourguide.services.notification.notification_service import NotificationService


class MessageService(BaseService[Message, MessageRepository]):
    """
    Send, list and mark-read for a booking's thread.

    Only the booking's two participants may touch its thread.
    """

    def __init__(self, db_session: Session, notifications: NotificationService, clock: Optional[Clock] = None):
        super().__init__(MessageRepository(db_session), db_session, clock)
        self.bookings = BookingRepository(db_session)
        self.notifications = notifications

    def _participant_booking(self, booking_id: str, user_id: str, action: str):
        """Load a booking and check that ``user_id`` takes part in it."""
        booking = self.bookings.find_by_id(booking_id)
        if not booking:
            return None, ServiceResult.not_found("Booking", booking_id)
        if not booking.is_participant(user_id):
            return None, ServiceResult.forbidden(action, "booking messages")
        return booking, None

    def send_message(self, booking_id: str, sender_id: str, content: str) -> ServiceResult[MessageResponse]:
        """
        Post a message and notify the other participant.

        Args:
            booking_id: Thread to post in
            sender_id: Acting user id
            content: 1 to 1000 characters
        """
        try:
            booking, failure = self._participant_booking(booking_id, sender_id, "send")
            if failure:
                return failure

            text = (content or "").strip()
            if not text or len(text) > MAX_MESSAGE_LENGTH:
                return ServiceResult.validation_failure(
                    f"Message must be between 1 and {MAX_MESSAGE_LENGTH} characters",
                    field="content",
                    details={"length": len(text)},
                )

            message = self.repository.create(
                Message(booking_id=booking.id, sender_id=sender_id, content=text, is_read=False)
            )
            response = MessageResponse.model_validate(message)

            self._logger.info(
                f"Message posted on booking {booking.id}",
                extra={"booking_id": booking.id, "message_id": message.id},
            )
            self.notifications.publish_message(
                booking.other_participant(sender_id),
                response.model_dump(mode="json"),
            )
            return ServiceResult.success(response)
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "send message", booking_id)

    def list_messages(self, booking_id: str, acting_user_id: str) -> ServiceResult[List[MessageResponse]]:
        """Thread in posting order."""
        try:
            booking, failure = self._participant_booking(booking_id, acting_user_id, "read")
            if failure:
                return failure

            messages = self.repository.list_for_booking(booking.id)
            return ServiceResult.success([MessageResponse.model_validate(m) for m in messages])
        except Exception as e:
            return self._handle_exception(e, "list messages", booking_id)

    def mark_read(self, booking_id: str, reader_id: str) -> ServiceResult[MarkReadResponse]:
        """Mark the other participant's messages as read."""
        try:
            booking, failure = self._participant_booking(booking_id, reader_id, "read")
            if failure:
                return failure

            updated = self.repository.mark_read(booking.id, reader_id)
            return ServiceResult.success(MarkReadResponse(updated=updated))
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "mark messages read", booking_id)
