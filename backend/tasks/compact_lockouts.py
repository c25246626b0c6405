#!/usr/bin/env python3
"""
Compaction task for expired account lockouts.

Lockout expiry is evaluated at read time, so expired rows keep is_active=true
until something flips them. This task does that; it never changes whether an
account counts as locked.

This script can be run:
- Via cron: 0 * * * * cd /path/to/backend && python -m tasks.compact_lockouts
- Via the in-process scheduler (LOCKOUT_COMPACTION_ENABLED=true)
- Manually: python -m tasks.compact_lockouts
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

# Add backend to path for imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from loguru import logger  # noqa: E402

from core.correlation import ensure_correlation_id  # noqa: E402
from repositories.database import SessionLocal  # noqa: E402
from services.lockout_service import LockoutService  # noqa: E402

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def compact_lockouts(
    db: "Session | None" = None,
    service: LockoutService | None = None,
) -> dict[str, int]:
    """
    Deactivate every expired lockout.

    Args:
        db: Optional database session. If not provided, creates a new session.
        service: Optional preconfigured service (custom policy or clock).

    Returns:
        Dictionary with the number of compacted lockouts
    """
    should_close = db is None and service is None
    if service is None:
        if db is None:
            db = SessionLocal()
        service = LockoutService(db)

    ensure_correlation_id()

    try:
        logger.info("Starting lockout compaction task")
        start_time = datetime.now(timezone.utc)

        compacted = service.compact_expired_lockouts()

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(
            f"Lockout compaction completed in {elapsed:.2f}s - compacted: {compacted}"
        )

        return {"compacted_count": compacted}
    finally:
        if should_close and db is not None:
            db.close()


if __name__ == "__main__":
    # Configure logging for standalone execution
    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        level="INFO",
    )

    result = compact_lockouts()
    print(f"Compaction completed: {result}")
    sys.exit(0)
