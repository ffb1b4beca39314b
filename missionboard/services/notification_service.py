"""Notification service: first delivery attempt and hand-off to the retry queue."""

import logging
from datetime import datetime

from missionboard.core.logging import span
from missionboard.domain.mission import MissionStatus
from missionboard.domain.notification import (
    LateCompletionNotification,
    MissionAcceptanceNotification,
    MissionRemovedNotification,
    MissionStatusNotification,
    MissionUpdatedNotification,
    Notification,
    RemovalKind,
)
from missionboard.interface import email_sender, email_templates
from missionboard.models.service_models import NotificationResult
from missionboard.services import notification_queue


logger = logging.getLogger(__name__)


def is_wanted(notification: Notification) -> bool:
    """Check the recipient's notification preferences.

    Account emails (verification, registration, acceptance) are always sent.
    """
    match notification:
        case MissionStatusNotification(conciergerie=conciergerie, status=status):
            prefs = conciergerie.notification_settings
            return {
                MissionStatus.ACCEPTED: prefs.accepted_missions,
                MissionStatus.STARTED: prefs.started_missions,
                MissionStatus.COMPLETED: prefs.completed_missions,
            }[status]
        case LateCompletionNotification(conciergerie=conciergerie):
            return conciergerie.notification_settings.missions_ended_without_completion
        case MissionAcceptanceNotification(employee=employee):
            return employee.notification_settings.accepted_missions
        case MissionUpdatedNotification(employee=employee):
            return employee.notification_settings.mission_changed
        case MissionRemovedNotification(employee=employee, removal=removal):
            if removal == RemovalKind.DELETED:
                return employee.notification_settings.mission_deleted
            return employee.notification_settings.missions_canceled
        case _:
            return True


async def send_notification(notification: Notification) -> bool:
    """Render and send a notification once. Returns True on success, never raises."""
    with span("notification_service.send_notification"):
        try:
            message = email_templates.render(notification)
        except (KeyError, ValueError) as e:
            logger.error("Failed to render notification", extra={"kind": notification.kind, "error": str(e)})
            return False

        result = await email_sender.send_email(to=message.to, subject=message.subject, html=message.html)
        if not result.success:
            logger.warning(
                "Notification send failed",
                extra={"kind": notification.kind, "to": message.to, "error": result.error},
            )
        return result.success


async def dispatch(notification: Notification, *, now: datetime | None = None) -> NotificationResult:
    """Deliver a notification, queueing it for retries if the first attempt fails.

    Never raises for delivery problems; a transition that triggered the notification is
    already committed when this runs.
    """
    with span("notification_service.dispatch"):
        if not is_wanted(notification):
            logger.info("Notification skipped by recipient preferences", extra={"kind": notification.kind})
            return NotificationResult(kind=notification.kind, skipped=True)

        recipient = email_templates.render(notification).to
        if await send_notification(notification):
            return NotificationResult(kind=notification.kind, recipient=recipient, sent=True)

        try:
            job = await notification_queue.enqueue(notification, now=now)
        except RuntimeError as e:
            logger.error("Failed to queue notification", extra={"kind": notification.kind, "error": str(e)})
            return NotificationResult(kind=notification.kind, recipient=recipient, error=str(e))

        return NotificationResult(kind=notification.kind, recipient=recipient, queued=True, job_id=job.id)
