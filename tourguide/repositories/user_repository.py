"""
Repositories for users and their marketplace profiles.
"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.exceptions import RepositoryError
from tourguide.models.user import Guide, Tour, Tourist, User
from tourguide.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(User, db)


class TouristRepository(BaseRepository[Tourist]):
    def __init__(self, db: Session):
        super().__init__(Tourist, db)

    def find_by_user_id(self, user_id: str) -> Optional[Tourist]:
        return self.find_one_by_criteria({"user_id": user_id})


class GuideRepository(BaseRepository[Guide]):
    """Guide profiles, including the derived rating fields."""

    def __init__(self, db: Session):
        super().__init__(Guide, db)

    def find_by_user_id(self, user_id: str) -> Optional[Guide]:
        return self.find_one_by_criteria({"user_id": user_id})

    def set_rating(self, guide_id: str, average_rating: float, total_reviews: int) -> None:
        """Write recomputed rating aggregates. Does not commit."""
        stmt = (
            update(Guide)
            .where(Guide.id == guide_id)
            .values(average_rating=average_rating, total_reviews=total_reviews)
        )
        try:
            self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Rating update failed: {str(e)}") from e


class TourRepository(BaseRepository[Tour]):
    def __init__(self, db: Session):
        super().__init__(Tour, db)
