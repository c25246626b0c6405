"""
Background scheduler for lockout compaction.

Expired lockouts are already ignored at read time; this job only flips their
`is_active` flag so the active set stays small. Disabled unless
LOCKOUT_COMPACTION_ENABLED is set.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from core.correlation import generate_correlation_id, set_correlation_id
from repositories.database import SessionLocal

COMPACTION_JOB_ID = "lockout_compaction"

# Global scheduler instance
scheduler: BackgroundScheduler | None = None


def lockout_compaction_job() -> int:
    """
    Scheduled job deactivating expired lockout rows.

    Creates its own database session for isolation.

    Returns:
        Number of rows deactivated.
    """
    from services.lockout_service import LockoutService

    set_correlation_id(generate_correlation_id())
    logger.info("Running scheduled lockout compaction job")

    db = SessionLocal()
    try:
        compacted = LockoutService(db).compact_expired_lockouts()
        logger.info(f"Lockout compaction completed: {compacted} rows deactivated")
        return compacted
    finally:
        db.close()


def setup_scheduler(interval_minutes: int = 60) -> None:
    """
    Configure and start the background scheduler.

    Args:
        interval_minutes: Minutes between compaction runs.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return

    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        lockout_compaction_job,
        IntervalTrigger(minutes=interval_minutes),
        id=COMPACTION_JOB_ID,
        name="Expired Lockout Compaction",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info(
        f"Background scheduler started with lockout compaction every "
        f"{interval_minutes} minutes"
    )


def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")
    scheduler = None


def get_scheduler_status() -> dict:
    """Get current scheduler status for monitoring."""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": (
                    job.next_run_time.isoformat() if job.next_run_time else None
                ),
            }
        )

    return {"running": scheduler.running, "jobs": jobs}
