"""
Account Security Router.

Admin endpoints (statistics, suspicious activity, audit trail, lockouts) and
user endpoints (activity history, password change, password strength check).

Authentication and authorization are supplied by the host application as
router dependencies (see main.create_app).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.pagination import (
    ActivityPage,
    ActivityPageLimit,
    PaginationLimitLarge,
    PaginationSkip,
)
from helpers.request_utils import get_request_metadata
from repositories.database import get_db
from services.account_security_service import AccountSecurityGuard
from services.lockout_service import DEFAULT_UNLOCK_ACTOR

admin_router = APIRouter(prefix="/admin/security", tags=["security"])
router = APIRouter(tags=["security"])


def get_security_guard(db: Session = Depends(get_db)) -> AccountSecurityGuard:
    """Build a request-scoped guard on the request's session."""
    return AccountSecurityGuard(db)


# ============================================================================
# Admin: reporting
# ============================================================================


@admin_router.get("/stats", response_model=schemas.SecurityStats)
def get_security_stats(
    days: int = Query(30, ge=1, le=365, description="Trailing window in days"),
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> schemas.SecurityStats:
    """Login statistics over the trailing window."""
    return guard.get_security_stats(days)


@admin_router.get(
    "/suspicious-activity", response_model=list[schemas.LoginAttemptResponse]
)
def get_suspicious_activity(
    hours: int = Query(24, ge=1, le=720, description="Trailing window in hours"),
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> list[schemas.LoginAttemptResponse]:
    """Most recent failed login attempts, newest first."""
    return guard.get_suspicious_activity(hours)


@admin_router.get("/audit-logs", response_model=list[schemas.AuditLogResponse])
def get_audit_logs(
    action: Optional[str] = Query(None, description="Filter by action tag"),
    username: Optional[str] = Query(None, description="Filter by username"),
    skip: PaginationSkip = 0,
    limit: PaginationLimitLarge = 100,
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> list[schemas.AuditLogResponse]:
    """System audit trail (lockouts, manual unlocks), newest first."""
    return guard.get_audit_logs(
        action=action, username=username, limit=limit, offset=skip
    )


# ============================================================================
# Admin: lockouts
# ============================================================================


@admin_router.get("/lockouts/{username}", response_model=schemas.LockoutStatus)
def get_lockout_status(
    username: str,
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> schemas.LockoutStatus:
    """Current lockout state of an account."""
    return guard.get_lockout_status(username)


@admin_router.post(
    "/lockouts/{username}/unlock", response_model=schemas.UnlockResponse
)
def unlock_account(
    username: str,
    request: Request,
    response: Response,
    unlocked_by: str = Query(DEFAULT_UNLOCK_ACTOR, max_length=150),
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> schemas.UnlockResponse:
    """
    Clear every active lockout of an account.

    Returns 503 when the unlock could not be persisted.
    """
    success = guard.unlock_account(
        username, unlocked_by=unlocked_by, **get_request_metadata(request)
    )
    if not success:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return schemas.UnlockResponse(username=username, success=success)


# ============================================================================
# User endpoints
# ============================================================================


@router.get("/users/{user_id}/activity", response_model=schemas.UserActivityPage)
def get_user_activity(
    user_id: int,
    page: ActivityPage = 1,
    limit: ActivityPageLimit = 10,
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> schemas.UserActivityPage:
    """A user's activity history, newest first."""
    return guard.get_user_activity(user_id, page=page, limit=limit)


@router.post("/users/{user_id}/password", response_model=schemas.OperationResult)
def change_password(
    user_id: int,
    payload: schemas.ChangePasswordRequest,
    request: Request,
    response: Response,
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> schemas.OperationResult:
    """
    Change a user's password.

    A rejected change returns 400 with the reason in `message`.
    """
    result = guard.change_password(
        user_id,
        payload.username,
        payload.current_password,
        payload.new_password,
        **get_request_metadata(request),
    )
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.post(
    "/security/password/validate", response_model=schemas.PasswordValidationResult
)
def validate_password(
    payload: schemas.PasswordValidateRequest,
    guard: AccountSecurityGuard = Depends(get_security_guard),
) -> schemas.PasswordValidationResult:
    """Check a candidate password against the policy without storing it."""
    return guard.validate_password(payload.password)
