"""
Security reporting for the admin dashboard.

All queries degrade to zeroed or empty results on persistence errors.
"""

from datetime import timedelta

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.time_utils import Clock, utc_now
from models.security_policy import DEFAULT_POLICY, SecurityPolicy
from repositories.account_lockout_repository import AccountLockoutRepository
from repositories.login_attempt_repository import LoginAttemptRepository


def compute_success_rate(successful: int, total: int) -> float:
    """Percentage of successful logins rounded to one decimal, 0.0 with no logins."""
    if total <= 0:
        return 0.0
    return round(successful / total * 100, 1)


class SecurityStatsService:
    """Login statistics and suspicious activity reports."""

    def __init__(
        self,
        db: Session,
        policy: SecurityPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.db = db
        self.policy = policy or DEFAULT_POLICY
        self.clock = clock or utc_now
        self.attempt_repo = LoginAttemptRepository(db)
        self.lockout_repo = AccountLockoutRepository(db)

    def get_security_stats(self, days: int = 30) -> schemas.SecurityStats:
        """
        Summarize login activity over the trailing `days`.

        Args:
            days: Window length in days

        Returns:
            SecurityStats (all zero on persistence error)
        """
        now = self.clock()
        since = now - timedelta(days=days)

        try:
            total = self.attempt_repo.count_since(since)
            successful = self.attempt_repo.count_since(since, success=True)
            failed = self.attempt_repo.count_since(since, success=False)
            active_lockouts = self.lockout_repo.count_current(now)
            active_users = self.attempt_repo.count_distinct_successful_usernames_since(
                since
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to compute security stats: {e}")
            return schemas.SecurityStats()

        return schemas.SecurityStats(
            total_logins=total,
            successful_logins=successful,
            failed_logins=failed,
            success_rate=compute_success_rate(successful, total),
            active_lockouts=active_lockouts,
            active_users=active_users,
        )

    def get_suspicious_activity(
        self, hours: int = 24
    ) -> list[schemas.LoginAttemptResponse]:
        """
        Most recent failed attempts in the trailing `hours`, newest first.

        Capped at the policy's suspicious_activity_limit.
        """
        since = self.clock() - timedelta(hours=hours)

        try:
            attempts = self.attempt_repo.get_recent_failures(
                since, limit=self.policy.suspicious_activity_limit
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load suspicious activity: {e}")
            return []

        return [schemas.LoginAttemptResponse.model_validate(a) for a in attempts]
