"""
Review repository.
"""

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.exceptions import RepositoryError
from tourguide.models.review import Review
from tourguide.repositories.base_repository import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    """Data access for reviews and rating aggregates."""

    def __init__(self, db: Session):
        super().__init__(Review, db)

    def find_by_booking(self, booking_id: str) -> Optional[Review]:
        return self.find_one_by_criteria({"booking_id": booking_id})

    def list_for_guide(self, guide_id: str, page: int, page_size: int) -> Tuple[List[Review], int]:
        """Newest first."""
        return self.paginate(
            Review.guide_id == guide_id,
            order_by=[Review.created_at.desc(), Review.id.desc()],
            page=page,
            page_size=page_size,
        )

    def get_rating_summary(self, guide_id: str) -> Tuple[int, float]:
        """
        Count and mean rating over every review of a guide.

        Returns:
            (total_reviews, average_rating); average is 0.0 with no reviews
        """
        try:
            stmt = select(
                func.count(Review.id),
                func.avg(Review.rating),
            ).where(Review.guide_id == guide_id)
            total, average = self.db.execute(stmt).one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Rating summary failed: {str(e)}") from e

        total = int(total or 0)
        return total, float(average) if total > 0 and average is not None else 0.0
