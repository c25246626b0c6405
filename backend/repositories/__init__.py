"""
Repository pattern implementation for data access layer.
"""

from .account_lockout_repository import AccountLockoutRepository
from .audit_log_repository import AuditLogRepository
from .base import BaseRepository
from .login_attempt_repository import LoginAttemptRepository
from .password_reset_repository import PasswordResetRepository
from .user_activity_repository import UserActivityRepository
from .user_repository import UserRepository

__all__ = [
    "AccountLockoutRepository",
    "AuditLogRepository",
    "BaseRepository",
    "LoginAttemptRepository",
    "PasswordResetRepository",
    "UserActivityRepository",
    "UserRepository",
]
