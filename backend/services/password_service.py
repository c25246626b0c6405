"""
Password policy enforcement, credential rotation and reset tokens.

Public methods never raise: failures come back as an OperationResult whose
message can be shown to the user as-is.
"""

from datetime import timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.password_hashing import get_password_hash, verify_password
from helpers.password_validation import validate_password
from helpers.time_utils import Clock, format_iso8601, utc_now
from models.exceptions import (
    DomainException,
    InvalidCurrentPasswordException,
    InvalidResetTokenException,
    PasswordPolicyException,
    UserNotFoundException,
)
from models.security_policy import DEFAULT_POLICY, SecurityPolicy
from repositories import db_models
from repositories.password_reset_repository import PasswordResetRepository
from repositories.user_repository import UserRepository
from services.activity_log_service import ActivityLogService, SecurityAction

PASSWORD_CHANGED_MESSAGE = "Contraseña actualizada correctamente"
PASSWORD_RESET_MESSAGE = "Contraseña restablecida correctamente"
INTERNAL_ERROR_MESSAGE = "Error interno del servidor"


class PasswordService:
    """Service for password validation, change and reset flows."""

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
        self.user_repo = UserRepository(db)
        self.reset_repo = PasswordResetRepository(db)

    def validate_password(self, password: str) -> schemas.PasswordValidationResult:
        """Validate a password against this service's policy."""
        return validate_password(password, self.policy)

    def _enforce_policy(self, password: str) -> None:
        result = self.validate_password(password)
        if not result.is_valid:
            raise PasswordPolicyException(result.message)

    def _store_new_password(self, user: db_models.User, new_password: str) -> None:
        self.user_repo.set_password_hash(
            user, get_password_hash(new_password, rounds=self.policy.bcrypt_rounds)
        )

    def change_password(
        self,
        user_id: int,
        username: str,
        current_password: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> schemas.OperationResult:
        """
        Rotate a user's password after verifying the current one.

        Args:
            user_id: User whose password changes
            username: Username recorded in the activity log
            current_password: Password the user claims to have now
            new_password: Replacement password, checked against the policy
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            OperationResult describing the outcome
        """
        try:
            user = self.user_repo.get_by_id(user_id)
            if user is None:
                raise UserNotFoundException()

            if not verify_password(current_password, user.hashed_password):
                self.activity_log.log_user_activity(
                    SecurityAction.PASSWORD_CHANGE_FAILED,
                    user_id=user_id,
                    username=username,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    success=False,
                    details={"reason": "invalid_current_password"},
                )
                raise InvalidCurrentPasswordException()

            self._enforce_policy(new_password)

            self._store_new_password(user, new_password)
            self.user_repo.commit()
        except DomainException as e:
            return schemas.OperationResult(success=False, message=e.message)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error changing password for user {user_id}: {e}")
            return schemas.OperationResult(
                success=False, message=INTERNAL_ERROR_MESSAGE
            )

        self.activity_log.log_user_activity(
            SecurityAction.PASSWORD_CHANGED,
            user_id=user_id,
            username=username,
            ip_address=ip_address,
            user_agent=user_agent,
            success=True,
            details={"changed_at": format_iso8601(self.clock())},
        )
        logger.info(f"Password changed for user {user_id}")
        return schemas.OperationResult(success=True, message=PASSWORD_CHANGED_MESSAGE)

    def create_password_reset_token(self, user_id: int, email: str) -> Optional[str]:
        """
        Issue a single-use reset token. Delivery is the caller's job.

        Returns:
            The token string, or None if the user is unknown or the store fails
        """
        now = self.clock()
        expires_at = now + timedelta(
            minutes=self.policy.password_reset_token_expiry_minutes
        )

        try:
            user = self.user_repo.get_by_id(user_id)
            if user is None:
                logger.warning(f"Password reset requested for unknown user {user_id}")
                return None
            username = user.username
            record = self.reset_repo.create_token(
                user_id=user_id,
                email=email,
                expires_at=expires_at,
                created_at=now,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create reset token for user {user_id}: {e}")
            return None

        self.activity_log.log_user_activity(
            SecurityAction.PASSWORD_RESET_REQUESTED,
            user_id=user_id,
            username=username,
            success=True,
            details={"expires_at": format_iso8601(expires_at)},
            timestamp=now,
        )
        return record.token

    def reset_password_with_token(
        self,
        token: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> schemas.OperationResult:
        """
        Set a new password using a reset token and consume the token.

        Unknown, used and expired tokens are all reported the same way.
        """
        now = self.clock()

        try:
            record = self.reset_repo.get_valid_token(token, now)
            if record is None:
                raise InvalidResetTokenException()

            user = self.user_repo.get_by_id(record.user_id)
            if user is None:
                raise InvalidResetTokenException()
            user_id, username = user.id, user.username

            self._enforce_policy(new_password)

            self._store_new_password(user, new_password)
            self.reset_repo.mark_as_used(record.id)
            self.reset_repo.commit()
        except DomainException as e:
            return schemas.OperationResult(success=False, message=e.message)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error resetting password with token: {e}")
            return schemas.OperationResult(
                success=False, message=INTERNAL_ERROR_MESSAGE
            )

        self.activity_log.log_user_activity(
            SecurityAction.PASSWORD_RESET_COMPLETED,
            user_id=user_id,
            username=username,
            ip_address=ip_address,
            user_agent=user_agent,
            success=True,
            details={"reset_at": format_iso8601(now)},
            timestamp=now,
        )
        logger.info(f"Password reset completed for user {user_id}")
        return schemas.OperationResult(success=True, message=PASSWORD_RESET_MESSAGE)
