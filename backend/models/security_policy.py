"""
Account security policy.

Immutable snapshot of the lockout and password rules. Services receive a
policy through their constructor instead of reading module-level constants,
so callers (and tests) can run with different thresholds.
"""

from dataclasses import dataclass

from models.config import Settings, settings


@dataclass(frozen=True)
class SecurityPolicy:
    """Lockout and password policy configuration."""

    max_login_attempts: int = 5
    lockout_duration_minutes: int = 15
    failure_window_minutes: int = 15
    password_reset_token_expiry_minutes: int = 30
    min_password_length: int = 8
    password_history_count: int = 5
    session_timeout_minutes: int = 120
    bcrypt_rounds: int = 12
    lockout_check_fail_open: bool = True
    suspicious_activity_limit: int = 50

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SecurityPolicy":
        """Build a policy from application settings."""
        return cls(
            max_login_attempts=config.SECURITY_MAX_LOGIN_ATTEMPTS,
            lockout_duration_minutes=config.SECURITY_LOCKOUT_DURATION_MINUTES,
            failure_window_minutes=config.SECURITY_FAILURE_WINDOW_MINUTES,
            password_reset_token_expiry_minutes=(
                config.PASSWORD_RESET_TOKEN_EXPIRY_MINUTES
            ),
            min_password_length=config.PASSWORD_MIN_LENGTH,
            password_history_count=config.PASSWORD_HISTORY_COUNT,
            session_timeout_minutes=config.SESSION_TIMEOUT_MINUTES,
            bcrypt_rounds=config.PASSWORD_BCRYPT_ROUNDS,
            lockout_check_fail_open=config.SECURITY_LOCKOUT_FAIL_OPEN,
            suspicious_activity_limit=config.SECURITY_SUSPICIOUS_ACTIVITY_LIMIT,
        )


DEFAULT_POLICY = SecurityPolicy()
