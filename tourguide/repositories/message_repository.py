"""
Message repository.
"""

from typing import List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.exceptions import RepositoryError
from tourguide.core.logging import get_logger
from tourguide.models.message import Message
from tourguide.repositories.base_repository import BaseRepository

logger = get_logger(__name__)


class MessageRepository(BaseRepository[Message]):
    """Data access for booking threads."""

    def __init__(self, db: Session):
        super().__init__(Message, db)

    def list_for_booking(self, booking_id: str) -> List[Message]:
        """All messages of a booking in thread order."""
        try:
            stmt = (
                select(Message)
                .where(Message.booking_id == booking_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
            return list(self.db.execute(stmt).unique().scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Message listing failed: {str(e)}") from e

    def mark_read(self, booking_id: str, reader_id: str) -> int:
        """
        Flag every unread message not sent by ``reader_id`` as read.

        Single bulk UPDATE; commits.

        Returns:
            Number of messages flipped
        """
        stmt = (
            update(Message)
            .where(Message.booking_id == booking_id)
            .where(Message.sender_id != reader_id)
            .where(Message.is_read.is_(False))
            .values(is_read=True)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Mark read failed: {str(e)}") from e

        logger.debug(f"Marked {result.rowcount} messages read on booking {booking_id}")
        return result.rowcount
