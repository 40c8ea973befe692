"""
Generic repository over one mapped model.

Repositories own every SQL statement and translate SQLAlchemy failures
into ``EntityAlreadyExistsError`` (unique violations) or
``RepositoryError`` (anything else).
"""

from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.exceptions import EntityAlreadyExistsError, RepositoryError
from tourguide.core.logging import get_logger
from tourguide.models.base import BaseModel

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Commit failed: {e}") from e

    def create(self, entity: ModelType, commit: bool = True) -> ModelType:
        """
        Add ``entity`` and either commit or just flush it.

        A flush is enough to surface unique-constraint violations inside
        the caller's transaction.

        Raises:
            EntityAlreadyExistsError: If a unique constraint is violated
            RepositoryError: On any other database failure
        """
        name = self.model.__name__
        try:
            self.db.add(entity)
            if commit:
                self.db.commit()
                self.db.refresh(entity)
            else:
                self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise EntityAlreadyExistsError(f"{name} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Create {name} failed: {e}") from e

        logger.info(f"Created {name}", extra={"entity_id": entity.id})
        return entity

    def find_by_id(self, id: str) -> Optional[ModelType]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Find {self.model.__name__} failed: {e}") from e

    def find_one_by_criteria(self, criteria: Dict[str, Any]) -> Optional[ModelType]:
        try:
            stmt = select(self.model).filter_by(**criteria).limit(1)
            return self.db.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Find {self.model.__name__} failed: {e}") from e

    def count(self, *filters) -> int:
        try:
            stmt = select(func.count()).select_from(self.model)
            if filters:
                stmt = stmt.where(*filters)
            return self.db.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Count {self.model.__name__} failed: {e}") from e

    def paginate(
        self,
        *filters,
        order_by=None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[ModelType], int]:
        """
        One page of rows matching ``filters`` plus the total match count.

        Returns:
            Tuple of (items, total)
        """
        try:
            stmt = select(self.model)
            if filters:
                stmt = stmt.where(*filters)
            if order_by is not None:
                if not isinstance(order_by, (list, tuple)):
                    order_by = [order_by]
                stmt = stmt.order_by(*order_by)
            stmt = stmt.offset((page - 1) * page_size).limit(page_size)
            items = list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Paginate {self.model.__name__} failed: {e}") from e
        return items, self.count(*filters)
