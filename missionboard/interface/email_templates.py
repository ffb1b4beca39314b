"""Email templates for every notification kind.

All user-facing email text is defined here; `render` picks the renderer matching the
notification's kind and returns a ready-to-send message.
"""

from collections.abc import Callable
from datetime import datetime
from html import escape
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from missionboard.core.config import settings
from missionboard.domain.mission import Mission, MissionStatus
from missionboard.domain.notification import (
    AcceptanceNotification,
    LateCompletionNotification,
    MissionAcceptanceNotification,
    MissionRemovedNotification,
    MissionStatusNotification,
    MissionUpdatedNotification,
    Notification,
    NotificationKind,
    RegistrationNotification,
    RemovalKind,
    VerificationNotification,
)


class EmailMessage(BaseModel):
    """Rendered email ready for the sender."""

    to: str
    subject: str
    html: str


TASK_LABELS = {
    "cleaning": "Ménage",
    "gardening": "Jardinage",
    "arrival": "Arrivée",
    "departure": "Départ",
}

STATUS_LABELS = {
    MissionStatus.ACCEPTED: "acceptée",
    MissionStatus.STARTED: "démarrée",
    MissionStatus.COMPLETED: "terminée",
}

SIGNATURE = "<p>Merci,<br>L'équipe Job Conciergerie</p>"


def _wrap(title: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #333;">{escape(title)}</h2>'
        f"{body}{SIGNATURE}</div>"
    )


def format_date_time(moment: datetime) -> str:
    """Format a timestamp in the configured time zone, e.g. `14/03/2026 09:30`."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(ZoneInfo(settings.timezone))
    return moment.strftime("%d/%m/%Y %H:%M")


def _mission_summary(mission: Mission, home_title: str) -> str:
    tasks = ", ".join(TASK_LABELS.get(kind, kind) for kind in mission.tasks)
    return (
        "<ul>"
        f"<li><strong>Bien :</strong> {escape(home_title)}</li>"
        f"<li><strong>Prestations :</strong> {escape(tasks)}</li>"
        f"<li><strong>Début :</strong> {format_date_time(mission.start_date_time)}</li>"
        f"<li><strong>Fin :</strong> {format_date_time(mission.end_date_time)}</li>"
        "</ul>"
    )


def _verification(n: VerificationNotification) -> EmailMessage:
    url = f"{settings.app_base_url}/{n.user_id}"
    title = "Vérification de votre compte conciergerie"
    body = (
        f"<p>Bonjour {escape(n.conciergerie.name)},</p>"
        "<p>Pour vérifier votre compte et accéder à votre espace, cliquez sur le lien ci-dessous :</p>"
        f'<p><a href="{escape(url)}">Vérifier mon compte</a></p>'
        "<p>Si vous n'avez pas demandé cette inscription, vous pouvez ignorer cet email.</p>"
    )
    return EmailMessage(to=n.conciergerie.email, subject=title, html=_wrap(title, body))


def _registration(n: RegistrationNotification) -> EmailMessage:
    title = "Nouvelle demande d'inscription employé"
    employee = n.employee
    message = f"<li><strong>Message :</strong> {escape(employee.message)}</li>" if employee.message else ""
    body = (
        f"<p>Bonjour {escape(n.conciergerie.name)},</p>"
        "<p>Un nouvel employé a demandé à rejoindre votre conciergerie.</p>"
        "<ul>"
        f"<li><strong>Nom :</strong> {escape(employee.full_name)}</li>"
        f"<li><strong>Email :</strong> {escape(employee.email)}</li>"
        f"<li><strong>Téléphone :</strong> {escape(employee.tel)}</li>"
        f"<li><strong>Lieu de vie :</strong> {escape(employee.geographic_zone)}</li>"
        f"{message}"
        "</ul>"
        "<p>Connectez-vous à votre espace pour accepter ou refuser cette demande.</p>"
    )
    return EmailMessage(to=n.conciergerie.email, subject=title, html=_wrap(title, body))


def _acceptance(n: AcceptanceNotification) -> EmailMessage:
    if n.is_accepted:
        title = "Votre inscription a été acceptée"
        body = (
            f"<p>Bonjour {escape(n.employee.first_name)},</p>"
            f"<p>{escape(n.conciergerie.name)} a accepté votre demande.</p>"
            f"<p>{n.missions_count} mission(s) sont actuellement disponibles.</p>"
        )
    else:
        title = "Votre inscription a été refusée"
        body = (
            f"<p>Bonjour {escape(n.employee.first_name)},</p>"
            f"<p>{escape(n.conciergerie.name)} n'a pas donné suite à votre demande.</p>"
        )
    return EmailMessage(to=n.employee.email, subject=title, html=_wrap(title, body))


def _mission_status(n: MissionStatusNotification) -> EmailMessage:
    title = f"Mission {STATUS_LABELS[n.status]} par {n.employee.full_name}"
    body = (
        f"<p>Bonjour {escape(n.conciergerie.name)},</p>"
        f"<p>{escape(n.employee.full_name)} a {STATUS_LABELS[n.status]} la mission suivante :</p>"
        f"{_mission_summary(n.mission, n.home.title)}"
    )
    return EmailMessage(to=n.conciergerie.email, subject=title, html=_wrap(title, body))


def _late_completion(n: LateCompletionNotification) -> EmailMessage:
    title = "Mission non terminée dans les temps"
    body = (
        f"<p>Bonjour {escape(n.conciergerie.name)},</p>"
        f"<p>La mission suivante, assignée à {escape(n.employee.full_name)}, "
        "est arrivée à échéance sans avoir été terminée :</p>"
        f"{_mission_summary(n.mission, n.home.title)}"
        f"<p>Contact : {escape(n.employee.email)} / {escape(n.employee.tel)}</p>"
    )
    return EmailMessage(to=n.conciergerie.email, subject=title, html=_wrap(title, body))


def _mission_acceptance(n: MissionAcceptanceNotification) -> EmailMessage:
    title = "Confirmation de mission"
    body = (
        f"<p>Bonjour {escape(n.employee.first_name)},</p>"
        f"<p>Vous avez accepté une mission pour {escape(n.conciergerie.name)} :</p>"
        f"{_mission_summary(n.mission, n.home.title)}"
    )
    return EmailMessage(to=n.employee.email, subject=title, html=_wrap(title, body))


def _mission_updated(n: MissionUpdatedNotification) -> EmailMessage:
    title = "Mission modifiée"
    changes = "".join(f"<li>{escape(change)}</li>" for change in n.changes)
    body = (
        f"<p>Bonjour {escape(n.employee.first_name)},</p>"
        f"<p>{escape(n.conciergerie.name)} a modifié une mission que vous aviez acceptée. "
        "Elle est de nouveau disponible et doit être acceptée à nouveau.</p>"
        f"<ul>{changes}</ul>"
        f"{_mission_summary(n.mission, n.home.title)}"
    )
    return EmailMessage(to=n.employee.email, subject=title, html=_wrap(title, body))


def _mission_removed(n: MissionRemovedNotification) -> EmailMessage:
    if n.removal == RemovalKind.DELETED:
        title = "Mission supprimée"
        action = "a supprimé"
    else:
        title = "Mission annulée"
        action = "vous a retiré"
    body = (
        f"<p>Bonjour {escape(n.employee.first_name)},</p>"
        f"<p>{escape(n.conciergerie.name)} {action} la mission suivante :</p>"
        f"{_mission_summary(n.mission, n.home.title)}"
    )
    return EmailMessage(to=n.employee.email, subject=title, html=_wrap(title, body))


RENDERERS: dict[NotificationKind, Callable[..., EmailMessage]] = {
    NotificationKind.VERIFICATION: _verification,
    NotificationKind.REGISTRATION: _registration,
    NotificationKind.ACCEPTANCE: _acceptance,
    NotificationKind.MISSION_STATUS: _mission_status,
    NotificationKind.LATE_COMPLETION: _late_completion,
    NotificationKind.MISSION_ACCEPTANCE: _mission_acceptance,
    NotificationKind.MISSION_UPDATED: _mission_updated,
    NotificationKind.MISSION_REMOVED: _mission_removed,
}


def render(notification: Notification) -> EmailMessage:
    """Render a notification into an email."""
    return RENDERERS[notification.kind](notification)
