"""Scheduler for background jobs (notification retries, late-mission alerts)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from missionboard.core.config import constants, settings
from missionboard.services import mission_service, notification_queue


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def run_notification_retries() -> None:
    """Scan the retry queue once. Errors are logged so the next tick still runs."""
    try:
        await notification_queue.process_retries()
    except Exception as e:
        logger.error(f"Error in notification retry job: {e}")


async def run_late_mission_check() -> None:
    """Alert conciergeries about missions that ended without completion."""
    try:
        await mission_service.notify_late_missions()
    except Exception as e:
        logger.error(f"Error in late mission job: {e}")


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        run_notification_retries,
        trigger=IntervalTrigger(seconds=settings.notification_scan_interval_seconds),
        id=constants.NOTIFICATION_RETRY_JOB_ID,
        name="Retry Failed Notifications",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Scheduled notification retry job: every {settings.notification_scan_interval_seconds}s")

    scheduler.add_job(
        run_late_mission_check,
        trigger=IntervalTrigger(minutes=settings.late_mission_check_minutes),
        id=constants.LATE_MISSION_JOB_ID,
        name="Check Late Missions",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Scheduled late mission job: every {settings.late_mission_check_minutes}min")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
