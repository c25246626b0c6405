import json
from enum import Enum

from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Any, Optional, List


class PasswordStrength(str, Enum):
    """Password strength buckets derived from the character-class score."""

    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


# Result schemas (returned by services, never raised)
class OperationResult(BaseModel):
    """Outcome of a user-facing operation with a displayable message."""

    success: bool
    message: str


class PasswordValidationResult(BaseModel):
    is_valid: bool
    message: str
    strength: PasswordStrength


# Login attempt / lockout schemas
class LoginAttemptResponse(BaseModel):
    """Schema for a recorded login attempt."""

    id: int
    username: str
    user_id: Optional[int] = None
    ip_address: str
    user_agent: Optional[str] = None
    success: bool
    failure_reason: Optional[str] = None
    attempted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountLockoutResponse(BaseModel):
    """Schema for an account lockout row."""

    id: int
    username: str
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    locked_at: datetime
    locked_until: datetime
    attempt_count: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class LockoutStatus(BaseModel):
    """Current lockout state of a username."""

    username: str
    is_locked: bool
    locked_until: Optional[datetime] = None
    remaining_seconds: int = 0
    attempt_count: int = 0


class UnlockResponse(BaseModel):
    username: str
    success: bool


# Audit / activity schemas
class _ActivityEntryBase(BaseModel):
    """Shared shape of audit and user activity entries."""

    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool
    details: Optional[Any] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("details", mode="before")
    @classmethod
    def parse_details(cls, value: Any) -> Any:
        """Stored details are JSON text; expose them as structured data."""
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value


class AuditLogResponse(_ActivityEntryBase):
    """Schema for a system audit log entry."""


class UserActivityLogResponse(_ActivityEntryBase):
    """Schema for a user activity log entry."""


class UserActivityPage(BaseModel):
    """One page of a user's activity trail, newest first."""

    activities: List[UserActivityLogResponse] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0


# Reporting schemas
class SecurityStats(BaseModel):
    """Login statistics over a trailing window of days."""

    total_logins: int = 0
    successful_logins: int = 0
    failed_logins: int = 0
    success_rate: float = 0.0
    active_lockouts: int = 0
    active_users: int = 0


# Request schemas
class ChangePasswordRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    current_password: str
    new_password: str


class PasswordValidateRequest(BaseModel):
    password: str
