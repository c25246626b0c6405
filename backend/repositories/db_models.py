"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

Account security tables: login attempts, lockouts, audit and activity logs
and password reset tokens, plus the minimal user record they refer to.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from repositories.database import Base


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class User(Base):
    """Application user. Owned by the host application; read and updated here."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(
        String(150), unique=True, index=True, nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, onupdate=_utc_now
    )


class LoginAttempt(Base):
    """
    One row per authentication attempt.

    Append-only: rows are never updated or deleted.
    """

    __tablename__ = "login_attempts"
    __table_args__ = (
        Index(
            "ix_login_attempts_username_success_attempted",
            "username",
            "success",
            "attempted_at",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Resolved from username at write time (null for unknown users)",
    )
    ip_address: Mapped[str] = mapped_column(
        String(45), nullable=False, comment="Client IP address (IPv6 max length)"
    )
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    failure_reason: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Why the attempt failed: invalid_password, user_not_found, ...",
    )
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False, index=True
    )


class AccountLockout(Base):
    """
    One row per lockout episode.

    Only `is_active` is ever changed. Expiry is evaluated at query time
    against `locked_until`.
    """

    __tablename__ = "account_lockouts"
    __table_args__ = (
        Index(
            "ix_account_lockouts_username_active_until",
            "username",
            "is_active",
            "locked_until",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    locked_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False
    )
    locked_until: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, comment="End of the lockout window"
    )
    attempt_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Failures in the window that triggered this lockout",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class AuditLog(Base):
    """
    System-level security audit trail (lockouts, unlocks).

    `user_id` is informational only: the user may no longer exist.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_action_timestamp", "action", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(
        String(150), nullable=True, index=True
    )
    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Action tag: account_locked, account_unlocked_manually, ...",
    )
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    details: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment="JSON with additional event details"
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False, index=True
    )


class UserActivityLog(Base):
    """Per-user activity trail surfaced back to the user."""

    __tablename__ = "user_activity_logs"
    __table_args__ = (
        Index("ix_user_activity_logs_user_timestamp", "user_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Action tag: login, password_changed, password_change_failed, ...",
    )
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    details: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment="JSON with additional event details"
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False, index=True
    )


class PasswordResetToken(Base):
    """Single-use password reset token."""

    __tablename__ = "password_reset_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(
        String(128), unique=True, index=True, nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False
    )
