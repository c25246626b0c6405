"""
Audit log repository for database operations.

System-level security events (lockouts, manual unlocks). Append-only.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[db_models.AuditLog]):
    """Repository for audit log operations."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.AuditLog, db)

    def _build_query(
        self,
        action: Optional[str] = None,
        username: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
    ):
        """Build filtered query for audit logs."""
        query = self.db.query(self.model)

        if action:
            query = query.filter(self.model.action == action)
        if username:
            query = query.filter(self.model.username == username)
        if user_id:
            query = query.filter(self.model.user_id == user_id)
        if start_date:
            query = query.filter(self.model.timestamp >= start_date)

        return query

    def get_logs(
        self,
        action: Optional[str] = None,
        username: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[db_models.AuditLog]:
        """
        Get audit logs with filters, newest first.

        Args:
            action: Filter by action tag
            username: Filter by username
            user_id: Filter by user ID
            start_date: Only entries at or after this time
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            List of matching AuditLog entries
        """
        query = self._build_query(
            action=action,
            username=username,
            user_id=user_id,
            start_date=start_date,
        )
        return (
            query.order_by(self.model.timestamp.desc(), self.model.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_logs(
        self,
        action: Optional[str] = None,
        username: Optional[str] = None,
    ) -> int:
        """Count audit logs matching filters."""
        return self._build_query(action=action, username=username).count() or 0
