"""
Repository for password reset token operations.
"""

import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import PasswordResetToken


class PasswordResetRepository(BaseRepository[PasswordResetToken]):
    """Repository for managing single-use password reset tokens."""

    def __init__(self, db: Session):
        """Initialize the repository."""
        super().__init__(PasswordResetToken, db)

    @staticmethod
    def generate_token() -> str:
        """Generate a URL-safe random token (43 characters)."""
        return secrets.token_urlsafe(32)

    def create_token(
        self,
        user_id: int,
        email: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> PasswordResetToken:
        """
        Insert and commit a new reset token for a user.

        Args:
            user_id: User's ID
            email: Address the token was issued for
            expires_at: Expiry time (UTC)
            created_at: Creation time (UTC)

        Returns:
            Created token record
        """
        record = PasswordResetToken(
            user_id=user_id,
            token=self.generate_token(),
            email=email,
            expires_at=expires_at,
            created_at=created_at,
            is_used=False,
        )
        return self.create(record)

    def get_valid_token(
        self, token: str, now: datetime
    ) -> Optional[PasswordResetToken]:
        """
        Get an unused, unexpired token.

        Args:
            token: Token string
            now: Reference time

        Returns:
            Token record if valid, None otherwise
        """
        return (
            self.db.query(PasswordResetToken)
            .filter(
                and_(
                    PasswordResetToken.token == token,
                    PasswordResetToken.is_used == False,  # noqa: E712
                    PasswordResetToken.expires_at > now,
                )
            )
            .first()
        )

    def get_by_token(self, token: str) -> Optional[PasswordResetToken]:
        """Get a token record regardless of state."""
        return (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.token == token)
            .first()
        )

    def mark_as_used(self, token_id: int) -> None:
        """Mark a token as consumed. Does not commit."""
        self.db.query(PasswordResetToken).filter(
            PasswordResetToken.id == token_id
        ).update({PasswordResetToken.is_used: True}, synchronize_session=False)
