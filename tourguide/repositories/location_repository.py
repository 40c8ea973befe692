"""
Location update repository.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.constants import LOCATION_HISTORY_LIMIT
from tourguide.core.exceptions import RepositoryError
from tourguide.models.location import LocationUpdate
from tourguide.repositories.base_repository import BaseRepository


class LocationRepository(BaseRepository[LocationUpdate]):
    def __init__(self, db: Session):
        super().__init__(LocationUpdate, db)

    def recent_for_booking(self, booking_id: str, limit: int = LOCATION_HISTORY_LIMIT) -> List[LocationUpdate]:
        """Most recent samples first."""
        try:
            stmt = (
                select(LocationUpdate)
                .where(LocationUpdate.booking_id == booking_id)
                .order_by(LocationUpdate.created_at.desc(), LocationUpdate.id.desc())
                .limit(limit)
            )
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Location history failed: {str(e)}") from e
