import os
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development loads `.env` automatically. Under pytest or in CI the
    file is skipped so tests only see the environment they set up themselves.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    DATABASE_URL: str = "sqlite:///./data/parks_security.db"

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    # Safety: avoid creating DB schema automatically unless explicitly enabled.
    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Account lockout policy
    SECURITY_MAX_LOGIN_ATTEMPTS: int = Field(
        default=5,
        description="Failed attempts inside the failure window that trigger a lockout",
    )
    SECURITY_LOCKOUT_DURATION_MINUTES: int = Field(
        default=15,
        description="Minutes an account stays locked once the threshold is reached",
    )
    SECURITY_FAILURE_WINDOW_MINUTES: int = Field(
        default=15,
        description="Trailing window (minutes) in which failures are counted",
    )
    SECURITY_LOCKOUT_FAIL_OPEN: bool = Field(
        default=True,
        description="Report accounts as unlocked when the lockout lookup fails "
        "(set false to fail closed during a database outage)",
    )
    SECURITY_SUSPICIOUS_ACTIVITY_LIMIT: int = Field(
        default=50,
        description="Maximum failed attempts returned by the suspicious activity report",
    )

    # Password policy
    PASSWORD_MIN_LENGTH: int = Field(
        default=8,
        description="Minimum password length",
    )
    PASSWORD_BCRYPT_ROUNDS: int = Field(
        default=12,
        description="bcrypt cost factor used when storing new passwords",
    )
    PASSWORD_RESET_TOKEN_EXPIRY_MINUTES: int = Field(
        default=30,
        description="Minutes until a password reset token expires",
    )
    PASSWORD_HISTORY_COUNT: int = Field(
        default=5,
        description="Number of previous passwords to remember (reserved)",
    )
    SESSION_TIMEOUT_MINUTES: int = Field(
        default=120,
        description="Session inactivity timeout in minutes (reserved)",
    )

    # Lazy expiry housekeeping
    LOCKOUT_COMPACTION_ENABLED: bool = Field(
        default=False,
        description="Periodically deactivate lockout rows whose window has passed",
    )
    LOCKOUT_COMPACTION_INTERVAL_MINUTES: int = Field(
        default=60,
        description="Minutes between lockout compaction runs",
    )

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN) without validation errors
    )


settings = Settings()
