"""
User activity log repository for database operations.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository


class UserActivityRepository(BaseRepository[db_models.UserActivityLog]):
    """Repository for the per-user activity trail."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.UserActivityLog, db)

    def get_for_user(
        self, user_id: int, offset: int = 0, limit: int = 10
    ) -> list[db_models.UserActivityLog]:
        """
        Get one page of a user's activity, newest first.

        Args:
            user_id: User ID
            offset: Number of records to skip
            limit: Maximum records to return

        Returns:
            Activity entries ordered by timestamp descending
        """
        return (
            self.db.query(self.model)
            .filter(self.model.user_id == user_id)
            .order_by(self.model.timestamp.desc(), self.model.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_for_user(self, user_id: int) -> int:
        """Count all activity entries for a user."""
        result = (
            self.db.query(func.count(self.model.id))
            .filter(self.model.user_id == user_id)
            .scalar()
        )
        return result if result is not None else 0
