"""
Account lockout repository for database operations.

A username is locked while at least one row is active and its
`locked_until` has not passed. Expiry is a query-time filter.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class AccountLockoutRepository(BaseRepository[db_models.AccountLockout]):
    """Repository for AccountLockout entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize account lockout repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.AccountLockout, db)

    def _current_query(self, now: datetime):
        """Active rows whose lockout window has not yet passed."""
        return self.db.query(self.model).filter(
            self.model.is_active == True,  # noqa: E712
            self.model.locked_until >= now,
        )

    def create_lockout(
        self,
        username: str,
        locked_at: datetime,
        locked_until: datetime,
        attempt_count: int,
        ip_address: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> db_models.AccountLockout:
        """
        Insert and commit a new active lockout.

        Args:
            username: Locked username
            locked_at: When the lockout started
            locked_until: When the lockout ends
            attempt_count: Failures that triggered it
            ip_address: IP of the triggering attempt
            user_id: Resolved user ID, if known

        Returns:
            Created lockout
        """
        lockout = db_models.AccountLockout(
            username=username,
            user_id=user_id,
            ip_address=ip_address,
            locked_at=locked_at,
            locked_until=locked_until,
            attempt_count=attempt_count,
            is_active=True,
        )
        return self.create(lockout)

    def has_current_lockout(self, username: str, now: datetime) -> bool:
        """Check whether the username has an active, unexpired lockout."""
        return (
            self._current_query(now).filter(self.model.username == username).first()
            is not None
        )

    def get_current_lockout(
        self, username: str, now: datetime
    ) -> Optional[db_models.AccountLockout]:
        """
        Get the most recently created active, unexpired lockout.

        Args:
            username: Username to look up
            now: Reference time

        Returns:
            Newest current lockout, or None
        """
        return (
            self._current_query(now)
            .filter(self.model.username == username)
            .order_by(self.model.locked_at.desc(), self.model.id.desc())
            .first()
        )

    def deactivate_for_username(self, username: str) -> int:
        """
        Set is_active = false on every active row of a username. Does not commit.

        Returns:
            Number of rows changed
        """
        result = (
            self.db.query(self.model)
            .filter(
                self.model.username == username,
                self.model.is_active == True,  # noqa: E712
            )
            .update({self.model.is_active: False}, synchronize_session=False)
        )
        return result  # type: ignore[return-value]

    def count_current(self, now: datetime) -> int:
        """Count active, unexpired lockouts across all usernames."""
        result = (
            self.db.query(func.count(self.model.id))
            .filter(
                self.model.is_active == True,  # noqa: E712
                self.model.locked_until >= now,
            )
            .scalar()
        )
        return result if result is not None else 0

    def deactivate_expired(self, now: datetime) -> int:
        """
        Set is_active = false on active rows whose window ended before `now`.
        Does not commit.

        Returns:
            Number of rows changed
        """
        result = (
            self.db.query(self.model)
            .filter(
                self.model.is_active == True,  # noqa: E712
                self.model.locked_until < now,
            )
            .update({self.model.is_active: False}, synchronize_session=False)
        )
        return result  # type: ignore[return-value]
