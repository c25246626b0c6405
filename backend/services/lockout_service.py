"""
Login attempt recording and account lockout policy.

A username moves OPEN -> LOCKED when the failures inside the trailing window
reach the policy threshold, and back to OPEN either when `locked_until`
passes (checked at read time) or when an administrator unlocks it.

Every attempt is committed before the lockout evaluation runs, and nothing a
lockout write does can undo the recorded attempt.
"""

from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.request_utils import MAX_IP_ADDRESS_LENGTH, MAX_USER_AGENT_LENGTH
from helpers.time_utils import Clock, ensure_aware, utc_now
from models.security_policy import DEFAULT_POLICY, SecurityPolicy
from repositories.account_lockout_repository import AccountLockoutRepository
from repositories.login_attempt_repository import LoginAttemptRepository
from repositories.user_repository import UserRepository
from services.activity_log_service import ActivityLogService, SecurityAction

LOCKOUT_REASON = "max_login_attempts_exceeded"
DEFAULT_UNLOCK_ACTOR = "admin"
MAX_FAILURE_REASON_LENGTH = 100


class LockoutService:
    """Records login attempts and applies the lockout policy."""

    def __init__(
        self,
        db: Session,
        policy: SecurityPolicy | None = None,
        clock: Clock | None = None,
        activity_log: ActivityLogService | None = None,
    ):
        self.db = db
        self.policy = policy or DEFAULT_POLICY
        self.clock = clock or utc_now
        self.activity_log = activity_log or ActivityLogService(db, clock=self.clock)
        self.attempt_repo = LoginAttemptRepository(db)
        self.lockout_repo = AccountLockoutRepository(db)
        self.user_repo = UserRepository(db)

    def record_login_attempt(
        self,
        username: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        success: bool = False,
        failure_reason: Optional[str] = None,
    ) -> None:
        """
        Record one authentication attempt and evaluate the lockout policy.

        Args:
            username: Username the attempt was made for
            ip_address: Client IP address
            user_agent: Client user agent
            success: Whether authentication succeeded
            failure_reason: Why it failed (e.g. "invalid_password")

        A blank username or IP address is logged and skipped. Client strings
        are cut to their column sizes before writing.
        """
        if not username or not username.strip():
            logger.warning("Skipping login attempt with blank username")
            return
        if not ip_address or not ip_address.strip():
            logger.warning(f"Skipping login attempt for '{username}' with blank IP")
            return

        ip_address = ip_address[:MAX_IP_ADDRESS_LENGTH]
        if user_agent:
            user_agent = user_agent[:MAX_USER_AGENT_LENGTH]
        if failure_reason:
            failure_reason = failure_reason[:MAX_FAILURE_REASON_LENGTH]

        now = self.clock()

        try:
            user_id = self.user_repo.get_id_by_username(username)
            self.attempt_repo.create_attempt(
                username=username,
                ip_address=ip_address,
                user_agent=user_agent,
                success=success,
                failure_reason=failure_reason,
                attempted_at=now,
                user_id=user_id,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record login attempt for '{username}': {e}")
            return

        if not success:
            self._evaluate_lockout(username, ip_address, user_agent, user_id, now)

    def _evaluate_lockout(
        self,
        username: str,
        ip_address: str,
        user_agent: Optional[str],
        user_id: Optional[int],
        now: datetime,
    ) -> None:
        """Lock the account if the trailing window holds enough failures."""
        window_start = now - timedelta(minutes=self.policy.failure_window_minutes)

        try:
            failures = self.attempt_repo.count_failures_since(username, window_start)
            if failures < self.policy.max_login_attempts:
                return

            lockout = self.lockout_repo.create_lockout(
                username=username,
                user_id=user_id,
                ip_address=ip_address,
                locked_at=now,
                locked_until=now
                + timedelta(minutes=self.policy.lockout_duration_minutes),
                attempt_count=failures,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to evaluate lockout for '{username}': {e}")
            return

        logger.warning(
            f"Account '{username}' locked after {failures} failed attempts "
            f"(until {lockout.locked_until})"
        )
        self.activity_log.log_activity(
            SecurityAction.ACCOUNT_LOCKED,
            user_id=user_id,
            username=username,
            ip_address=ip_address,
            user_agent=user_agent,
            success=False,
            details={"reason": LOCKOUT_REASON, "attempt_count": failures},
            timestamp=now,
        )

    def is_account_locked(self, username: str) -> bool:
        """
        Check whether the username has an active, unexpired lockout.

        Read-only. On a persistence error the policy decides the answer:
        not locked when failing open (default), locked when failing closed.
        """
        try:
            return self.lockout_repo.has_current_lockout(username, self.clock())
        except SQLAlchemyError as e:
            self.db.rollback()
            fallback = not self.policy.lockout_check_fail_open
            logger.error(
                f"Lockout check failed for '{username}', "
                f"reporting is_locked={fallback}: {e}"
            )
            return fallback

    def get_lockout_status(self, username: str) -> schemas.LockoutStatus:
        """
        Describe the newest current lockout of a username.

        Returns:
            LockoutStatus with remaining seconds, or an unlocked status
        """
        now = self.clock()
        try:
            lockout = self.lockout_repo.get_current_lockout(username, now)
        except SQLAlchemyError as e:
            self.db.rollback()
            fallback = not self.policy.lockout_check_fail_open
            logger.error(f"Lockout status lookup failed for '{username}': {e}")
            return schemas.LockoutStatus(username=username, is_locked=fallback)

        if lockout is None:
            return schemas.LockoutStatus(username=username, is_locked=False)

        locked_until = ensure_aware(lockout.locked_until)
        remaining = max(0, int((locked_until - ensure_aware(now)).total_seconds()))
        return schemas.LockoutStatus(
            username=username,
            is_locked=True,
            locked_until=locked_until,
            remaining_seconds=remaining,
            attempt_count=lockout.attempt_count,
        )

    def unlock_account(
        self,
        username: str,
        unlocked_by: str = DEFAULT_UNLOCK_ACTOR,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """
        Deactivate every active lockout of a username.

        Returns True whenever the update ran, including when nothing was
        locked, and False on a persistence error.
        """
        try:
            cleared = self.lockout_repo.deactivate_for_username(username)
            self.lockout_repo.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to unlock account '{username}': {e}")
            return False

        logger.info(
            f"Account '{username}' unlocked by {unlocked_by} ({cleared} cleared)"
        )
        self.activity_log.log_activity(
            SecurityAction.ACCOUNT_UNLOCKED_MANUALLY,
            username=username,
            user_id=self._resolve_user_id(username),
            ip_address=ip_address,
            user_agent=user_agent,
            success=True,
            details={"unlocked_by": unlocked_by, "lockouts_cleared": cleared},
        )
        return True

    def compact_expired_lockouts(self) -> int:
        """
        Deactivate lockout rows whose window has already passed.

        Does not change any lock decision; the read path ignores expired rows.

        Returns:
            Number of rows deactivated (0 on persistence error)
        """
        try:
            compacted = self.lockout_repo.deactivate_expired(self.clock())
            self.lockout_repo.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Lockout compaction failed: {e}")
            return 0

        if compacted:
            logger.info(f"Deactivated {compacted} expired lockouts")
        return compacted

    def _resolve_user_id(self, username: str) -> Optional[int]:
        try:
            return self.user_repo.get_id_by_username(username)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Could not resolve user id for '{username}': {e}")
            return None
