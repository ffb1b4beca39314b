"""Durable bounded-retry queue for notifications that failed to send.

A job is created after a first failed attempt (attempts=1). Each scan re-sends jobs whose
last attempt is at least one retry interval old, bumping the attempt counter and timestamp
before sending. Jobs are removed on success, or dropped once they reach the attempt ceiling.
"""

import logging
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from missionboard.core import db_client
from missionboard.core.config import settings
from missionboard.core.logging import span
from missionboard.domain.notification import Notification, NotificationJob
from missionboard.models.service_models import RetryReport


logger = logging.getLogger(__name__)

COLLECTION = "notification_jobs"


def _retry_interval() -> timedelta:
    return timedelta(minutes=settings.notification_retry_interval_minutes)


async def enqueue(notification: Notification, *, now: datetime | None = None, attempts: int = 1) -> NotificationJob:
    """Store a notification whose send just failed.

    Args:
        notification: Notification to re-send later
        now: Time of the failed attempt (defaults to current UTC time)
        attempts: Attempts already made

    Returns:
        The stored job
    """
    with span("notification_queue.enqueue"):
        now = now or datetime.now(UTC)
        record = await db_client.create_record(
            collection=COLLECTION,
            data={
                "kind": notification.kind,
                "payload": notification.model_dump(mode="json"),
                "created_at": now,
                "last_attempt": now,
                "attempts": attempts,
            },
        )
        logger.info("Notification queued for retry", extra={"job_id": record["id"], "kind": notification.kind})
        return NotificationJob.model_validate(record)


async def remove(job_id: str) -> None:
    """Remove a job, raising KeyError if it does not exist."""
    with span("notification_queue.remove"):
        await db_client.delete_record(collection=COLLECTION, record_id=job_id)


async def _discard(job_id: str) -> None:
    """Remove a job that may already have been removed by another caller."""
    try:
        await remove(job_id)
    except KeyError:
        logger.info("Notification job already removed", extra={"job_id": job_id})


async def list_jobs() -> list[NotificationJob]:
    """All queued jobs, oldest first."""
    with span("notification_queue.list_jobs"):
        records = await db_client.list_all_records(
            collection=COLLECTION,
            sort="+id",
        )
        jobs = []
        for record in records:
            try:
                jobs.append(NotificationJob.model_validate(record))
            except ValidationError as e:
                logger.error("Unreadable notification job", extra={"job_id": record.get("id"), "error": str(e)})
        return jobs


def is_due(job: NotificationJob, now: datetime) -> bool:
    """True once a full retry interval has passed since the job's last attempt."""
    return now - job.last_attempt >= _retry_interval()


async def get_due_jobs(*, now: datetime | None = None) -> list[NotificationJob]:
    """Jobs whose retry interval has elapsed (including exhausted ones awaiting removal)."""
    now = now or datetime.now(UTC)
    return [job for job in await list_jobs() if is_due(job, now)]


async def process_retries(*, now: datetime | None = None) -> RetryReport:
    """Run one scan of the queue.

    For each due job: drop it if it has reached the attempt ceiling, otherwise record the
    new attempt first and then re-send; a successful send removes the job.
    """
    # notification_service hands failed sends to this module
    from missionboard.services import notification_service  # noqa: PLC0415

    with span("notification_queue.process_retries"):
        now = now or datetime.now(UTC)
        report = RetryReport()

        for job in await list_jobs():
            report.scanned += 1
            if not is_due(job, now):
                report.waiting += 1
                continue

            if job.attempts >= settings.notification_max_attempts:
                await _discard(job.id)
                report.dropped += 1
                logger.warning(
                    "Notification dropped after max attempts",
                    extra={"job_id": job.id, "kind": job.kind, "attempts": job.attempts},
                )
                continue

            try:
                await db_client.update_record(
                    collection=COLLECTION,
                    record_id=job.id,
                    data={"attempts": job.attempts + 1, "last_attempt": now},
                )
            except KeyError:
                report.vanished += 1
                logger.info("Notification job removed during scan", extra={"job_id": job.id})
                continue

            if await notification_service.send_notification(job.payload):
                await _discard(job.id)
                report.sent += 1
                logger.info("Queued notification delivered", extra={"job_id": job.id, "attempt": job.attempts + 1})
            else:
                report.failed += 1
                logger.warning(
                    "Queued notification failed again",
                    extra={"job_id": job.id, "attempt": job.attempts + 1},
                )

        if report.scanned:
            logger.info("Notification retry scan finished", extra=report.model_dump())
        return report
