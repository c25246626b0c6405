"""
Audit and user activity logging.

Two append-only trails share one entry shape:
- audit_logs: system security events (lockouts, manual unlocks)
- user_activity_logs: per-user events surfaced back to the user

Writing a log entry never fails the caller's operation: persistence errors
are rolled back and logged.
"""

import json
import math
from datetime import datetime
from typing import Any, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.request_utils import MAX_IP_ADDRESS_LENGTH, MAX_USER_AGENT_LENGTH
from helpers.time_utils import Clock, utc_now
from repositories.audit_log_repository import AuditLogRepository
from repositories.user_activity_repository import UserActivityRepository


class SecurityAction:
    """Action tags written to the audit and activity trails."""

    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_UNLOCKED_MANUALLY = "account_unlocked_manually"
    PASSWORD_CHANGED = "password_changed"  # nosec B105 - action tag, not a password
    PASSWORD_CHANGE_FAILED = "password_change_failed"  # nosec B105
    PASSWORD_RESET_REQUESTED = "password_reset_requested"  # nosec B105
    PASSWORD_RESET_COMPLETED = "password_reset_completed"  # nosec B105


def serialize_details(details: Optional[Any]) -> Optional[str]:
    """Dump details to JSON text; datetimes and other objects become strings."""
    if details is None:
        return None
    return json.dumps(details, default=str)


class ActivityLogService:
    """Service writing and reading the audit and user activity trails."""

    def __init__(self, db: Session, clock: Clock | None = None):
        self.db = db
        self.clock = clock or utc_now
        self.audit_repo = AuditLogRepository(db)
        self.activity_repo = UserActivityRepository(db)

    def _write(
        self,
        repo: AuditLogRepository | UserActivityRepository,
        action: str,
        user_id: Optional[int],
        username: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
        success: bool,
        details: Optional[Any],
        timestamp: Optional[datetime],
    ) -> None:
        entry = repo.model(
            user_id=user_id,
            username=username,
            action=action,
            ip_address=ip_address[:MAX_IP_ADDRESS_LENGTH] if ip_address else None,
            user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
            success=success,
            details=serialize_details(details),
            timestamp=timestamp or self.clock(),
        )

        try:
            repo.create(entry)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to write {repo.model.__tablename__} entry '{action}': {e}"
            )
            return

        log_data = {
            "action": action,
            "user_id": user_id,
            "ip_address": ip_address,
            "success": success,
        }
        if success:
            logger.bind(**log_data).info(f"Security event: {action}")
        else:
            logger.bind(**log_data).warning(f"Security event: {action}")

    def log_activity(
        self,
        action: str,
        *,
        user_id: Optional[int] = None,
        username: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
        details: Optional[Any] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """
        Append an entry to the system audit log.

        Args:
            action: Action tag (see SecurityAction)
            user_id: Informational user ID
            username: Username involved
            ip_address: Client IP address
            user_agent: Client user agent, truncated to 500 characters
            success: Whether the audited action succeeded
            details: JSON-serializable payload
            timestamp: Event time, defaults to the service clock
        """
        self._write(
            self.audit_repo,
            action,
            user_id,
            username,
            ip_address,
            user_agent,
            success,
            details,
            timestamp,
        )

    def log_user_activity(
        self,
        action: str,
        *,
        user_id: Optional[int] = None,
        username: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
        details: Optional[Any] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Append an entry to the user activity log. Same contract as log_activity."""
        self._write(
            self.activity_repo,
            action,
            user_id,
            username,
            ip_address,
            user_agent,
            success,
            details,
            timestamp,
        )

    def get_user_activity(
        self, user_id: int, page: int = 1, limit: int = 10
    ) -> schemas.UserActivityPage:
        """
        Get one page of a user's activity, newest first.

        Page and limit below 1 are clamped to 1. A persistence error yields an
        empty page echoing the requested page and limit.
        """
        page = max(page, 1)
        limit = max(limit, 1)
        offset = (page - 1) * limit

        try:
            entries = self.activity_repo.get_for_user(
                user_id, offset=offset, limit=limit
            )
            total = self.activity_repo.count_for_user(user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load activity for user {user_id}: {e}")
            return schemas.UserActivityPage(page=page, limit=limit)

        return schemas.UserActivityPage(
            activities=[
                schemas.UserActivityLogResponse.model_validate(entry)
                for entry in entries
            ],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def get_audit_logs(
        self,
        action: Optional[str] = None,
        username: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[schemas.AuditLogResponse]:
        """Get system audit entries, newest first. Empty on persistence error."""
        try:
            entries = self.audit_repo.get_logs(
                action=action,
                username=username,
                limit=max(limit, 1),
                offset=max(offset, 0),
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load audit logs: {e}")
            return []

        return [schemas.AuditLogResponse.model_validate(entry) for entry in entries]
