"""
Booking repository.

Status changes go through ``transition``: a single conditional UPDATE that
checks the current status in the same statement that writes the new one, so
two racing transitions on one booking cannot both succeed.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.exceptions import RepositoryError
from tourguide.core.logging import get_logger
from tourguide.models.base import utc_now
from tourguide.models.booking import Booking
from tourguide.models.enums import BookingStatus
from tourguide.repositories.base_repository import BaseRepository

logger = get_logger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Data access for bookings."""

    def __init__(self, db: Session):
        super().__init__(Booking, db)

    def reload(self, booking_id: str) -> Optional[Booking]:
        """Fetch a booking, overwriting any stale state held by the session."""
        try:
            return self.db.get(Booking, booking_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Reload failed: {str(e)}") from e

    def transition(
        self,
        booking_id: str,
        allowed_from: Iterable[BookingStatus],
        values: Dict[str, Any],
        conditions: Sequence[Any] = (),
    ) -> bool:
        """
        Conditionally update a booking.

        The row is written only if its status is one of ``allowed_from`` at
        the moment the statement executes. Nothing is committed here; the
        caller owns the transaction.

        Args:
            booking_id: Booking to update
            allowed_from: Statuses the booking may currently be in
            values: Column values to write (normally including ``status``)
            conditions: Further WHERE clauses the row must satisfy

        Returns:
            True if exactly one row changed
        """
        values = dict(values)
        values.setdefault("updated_at", utc_now())

        stmt = (
            update(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.status.in_(list(allowed_from)), *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Booking transition failed: {str(e)}") from e

        changed = result.rowcount == 1
        logger.debug(
            f"Conditional update on booking {booking_id}: {'applied' if changed else 'skipped'}",
            extra={"booking_id": booking_id, "target_status": str(values.get("status"))},
        )
        return changed

    def list_for_tourist(self, tourist_id: str) -> List[Booking]:
        return self._list(Booking.tourist_id == tourist_id)

    def list_for_guide(self, guide_id: str) -> List[Booking]:
        return self._list(Booking.guide_id == guide_id)

    def list_all(self) -> List[Booking]:
        return self._list()

    def _list(self, *filters) -> List[Booking]:
        try:
            stmt = select(Booking)
            if filters:
                stmt = stmt.where(*filters)
            stmt = stmt.order_by(Booking.created_at.desc())
            return list(self.db.execute(stmt).unique().scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Booking listing failed: {str(e)}") from e

    def update_fields(self, booking_id: str, values: Dict[str, Any]) -> None:
        """Unconditional column update. Does not commit."""
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Booking update failed: {str(e)}") from e

    def attach_late_payment(self, booking_id: str, payment_reference: str) -> bool:
        """
        Record a payment that arrived after the booking was cancelled.

        Only applies while the booking is CANCELLED and holds no payment
        reference yet, so a redelivered event cannot claim it twice.
        """
        return self.transition(
            booking_id,
            [BookingStatus.CANCELLED],
            {"stripe_payment_id": payment_reference},
            conditions=[Booking.stripe_payment_id.is_(None)],
        )

    def record_refund_attempt(self, booking_id: str) -> None:
        """Bump the failed-refund counter and commit it on its own."""
        self.update_fields(booking_id, {"refund_attempts": Booking.refund_attempts + 1})
        self.commit()
