"""
Account security guard.

Single entry point for request handlers: call is_account_locked before
authenticating, record_login_attempt after every attempt, change_password
for credential rotation, unlock_account from the admin console and the
reporting methods for dashboards.
"""

from typing import Any, Optional

from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.time_utils import Clock, utc_now
from models.security_policy import SecurityPolicy
from services.activity_log_service import ActivityLogService
from services.lockout_service import DEFAULT_UNLOCK_ACTOR, LockoutService
from services.password_service import PasswordService
from services.security_stats_service import SecurityStatsService


class AccountSecurityGuard:
    """
    Facade over lockout, activity log, password and reporting services.

    All components share one session, policy and clock.
    """

    def __init__(
        self,
        db: Session,
        policy: SecurityPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.db = db
        self.policy = policy or SecurityPolicy.from_settings()
        self.clock = clock or utc_now

        self.activity_log = ActivityLogService(db, clock=self.clock)
        self.lockouts = LockoutService(
            db, policy=self.policy, clock=self.clock, activity_log=self.activity_log
        )
        self.passwords = PasswordService(
            db, policy=self.policy, clock=self.clock, activity_log=self.activity_log
        )
        self.stats = SecurityStatsService(db, policy=self.policy, clock=self.clock)

    # Attempt recording and lockout

    def record_login_attempt(
        self,
        username: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        success: bool = False,
        failure_reason: Optional[str] = None,
    ) -> None:
        self.lockouts.record_login_attempt(
            username, ip_address, user_agent, success, failure_reason
        )

    def is_account_locked(self, username: str) -> bool:
        return self.lockouts.is_account_locked(username)

    def get_lockout_status(self, username: str) -> schemas.LockoutStatus:
        return self.lockouts.get_lockout_status(username)

    def unlock_account(
        self,
        username: str,
        unlocked_by: str = DEFAULT_UNLOCK_ACTOR,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        return self.lockouts.unlock_account(
            username,
            unlocked_by=unlocked_by,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def compact_expired_lockouts(self) -> int:
        return self.lockouts.compact_expired_lockouts()

    # Audit and activity trails

    def log_activity(self, action: str, **fields: Any) -> None:
        """Write a system audit entry. See ActivityLogService.log_activity."""
        self.activity_log.log_activity(action, **fields)

    def log_user_activity(self, action: str, **fields: Any) -> None:
        """Write a user activity entry. See ActivityLogService.log_user_activity."""
        self.activity_log.log_user_activity(action, **fields)

    def get_user_activity(
        self, user_id: int, page: int = 1, limit: int = 10
    ) -> schemas.UserActivityPage:
        return self.activity_log.get_user_activity(user_id, page=page, limit=limit)

    def get_audit_logs(
        self,
        action: Optional[str] = None,
        username: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[schemas.AuditLogResponse]:
        return self.activity_log.get_audit_logs(
            action=action, username=username, limit=limit, offset=offset
        )

    # Passwords

    def validate_password(self, password: str) -> schemas.PasswordValidationResult:
        return self.passwords.validate_password(password)

    def change_password(
        self,
        user_id: int,
        username: str,
        current_password: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> schemas.OperationResult:
        return self.passwords.change_password(
            user_id,
            username,
            current_password,
            new_password,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def create_password_reset_token(self, user_id: int, email: str) -> Optional[str]:
        return self.passwords.create_password_reset_token(user_id, email)

    def reset_password_with_token(
        self,
        token: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> schemas.OperationResult:
        return self.passwords.reset_password_with_token(
            token, new_password, ip_address=ip_address, user_agent=user_agent
        )

    # Reporting

    def get_security_stats(self, days: int = 30) -> schemas.SecurityStats:
        return self.stats.get_security_stats(days)

    def get_suspicious_activity(
        self, hours: int = 24
    ) -> list[schemas.LoginAttemptResponse]:
        return self.stats.get_suspicious_activity(hours)
