"""
Base repository class providing common database operations.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]


class BaseRepository(Generic[T]):
    """
    Base repository over a single SQLAlchemy model.

    Repositories never catch database errors; services decide how a failure
    degrades.
    """

    def __init__(self, model: type[T], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """Get entity by primary key, or None."""
        return self.db.query(self.model).filter(self.model.id == id).first()

    def create(self, entity: T) -> T:
        """
        Insert and commit a new entity.

        Args:
            entity: Entity to create

        Returns:
            The persisted entity, refreshed with generated columns
        """
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def commit(self) -> None:
        """Commit the current transaction."""
        self.db.commit()
