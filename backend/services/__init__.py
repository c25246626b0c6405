"""
Services layer for business logic.

This package contains service modules that encapsulate the account security
rules separate from the API routes.
"""

from .activity_log_service import ActivityLogService, SecurityAction
from .lockout_service import LockoutService
from .password_service import PasswordService
from .security_stats_service import SecurityStatsService
from .account_security_service import AccountSecurityGuard

__all__ = [
    "AccountSecurityGuard",
    "ActivityLogService",
    "LockoutService",
    "PasswordService",
    "SecurityAction",
    "SecurityStatsService",
]
