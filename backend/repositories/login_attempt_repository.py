"""
Login attempt repository for database operations.

Attempts are append-only: this repository inserts and counts, it never
updates or deletes rows. Every time-windowed query takes an explicit
`since` so callers control the clock.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class LoginAttemptRepository(BaseRepository[db_models.LoginAttempt]):
    """Repository for LoginAttempt entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize login attempt repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.LoginAttempt, db)

    def create_attempt(
        self,
        username: str,
        ip_address: str,
        success: bool,
        attempted_at: datetime,
        user_agent: Optional[str] = None,
        failure_reason: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> db_models.LoginAttempt:
        """
        Insert and commit a login attempt.

        Args:
            username: Username the attempt was made for
            ip_address: Client IP address
            success: Whether authentication succeeded
            attempted_at: When the attempt happened (UTC)
            user_agent: Browser user agent string
            failure_reason: Reason for failure (if applicable)
            user_id: Resolved user ID, None for unknown usernames

        Returns:
            Created login attempt
        """
        attempt = db_models.LoginAttempt(
            username=username,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            failure_reason=failure_reason,
            attempted_at=attempted_at,
        )
        return self.create(attempt)

    def count_failures_since(self, username: str, since: datetime) -> int:
        """
        Count failed attempts for a username at or after `since`.

        Args:
            username: Username to count for
            since: Start of the trailing window

        Returns:
            Count of failed attempts
        """
        result = (
            self.db.query(func.count(db_models.LoginAttempt.id))
            .filter(
                db_models.LoginAttempt.username == username,
                db_models.LoginAttempt.success == False,  # noqa: E712
                db_models.LoginAttempt.attempted_at >= since,
            )
            .scalar()
        )
        return result if result is not None else 0

    def count_since(self, since: datetime, success: Optional[bool] = None) -> int:
        """
        Count attempts at or after `since`, optionally filtered by outcome.

        Args:
            since: Start of the window
            success: True for successes only, False for failures only

        Returns:
            Count of attempts
        """
        query = self.db.query(func.count(db_models.LoginAttempt.id)).filter(
            db_models.LoginAttempt.attempted_at >= since
        )
        if success is not None:
            query = query.filter(db_models.LoginAttempt.success == success)

        result = query.scalar()
        return result if result is not None else 0

    def count_distinct_successful_usernames_since(self, since: datetime) -> int:
        """Count distinct usernames with at least one success at or after `since`."""
        result = (
            self.db.query(func.count(func.distinct(db_models.LoginAttempt.username)))
            .filter(
                db_models.LoginAttempt.success == True,  # noqa: E712
                db_models.LoginAttempt.attempted_at >= since,
            )
            .scalar()
        )
        return result if result is not None else 0

    def get_recent_failures(
        self, since: datetime, limit: int = 50
    ) -> list[db_models.LoginAttempt]:
        """
        Get the most recent failed attempts at or after `since`.

        Args:
            since: Start of the window
            limit: Maximum number of records to return

        Returns:
            Failed attempts ordered newest first
        """
        return (
            self.db.query(db_models.LoginAttempt)
            .filter(
                db_models.LoginAttempt.success == False,  # noqa: E712
                db_models.LoginAttempt.attempted_at >= since,
            )
            .order_by(
                db_models.LoginAttempt.attempted_at.desc(),
                db_models.LoginAttempt.id.desc(),
            )
            .limit(limit)
            .all()
        )
