"""
User repository for database operations.

Users are owned by the host application; the security module only looks
them up and rotates their password hash.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class UserRepository(BaseRepository[db_models.User]):
    """Repository for User entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize user repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    def get_id_by_username(self, username: str) -> Optional[int]:
        """Resolve a username to its user ID without loading the row."""
        return (
            self.db.query(db_models.User.id)
            .filter(db_models.User.username == username)
            .scalar()
        )

    def set_password_hash(self, user: db_models.User, hashed_password: str) -> None:
        """
        Replace a user's stored password hash. Does not commit.

        Args:
            user: User to update
            hashed_password: New bcrypt hash
        """
        user.hashed_password = hashed_password
        self.db.add(user)
