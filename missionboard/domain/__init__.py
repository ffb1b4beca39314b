"""Domain models and DTOs."""

from missionboard.domain.actor import Actor, ActorRole
from missionboard.domain.conciergerie import Conciergerie, ConciergerieNotificationSettings
from missionboard.domain.create_models import ConciergerieCreate, EmployeeCreate, HomeCreate, MissionCreate
from missionboard.domain.employee import Employee, EmployeeNotificationSettings, EmployeeStatus
from missionboard.domain.home import Home
from missionboard.domain.mission import (
    Mission,
    MissionError,
    MissionErrorKind,
    MissionPoints,
    MissionResult,
    MissionStatus,
    QuotaDay,
)
from missionboard.domain.notification import Notification, NotificationJob, NotificationKind, RemovalKind
from missionboard.domain.task import TaskKind
from missionboard.domain.update_models import EmployeeStatusUpdate, HomeUpdate, MissionUpdate


__all__ = [
    "Actor",
    "ActorRole",
    "Conciergerie",
    "ConciergerieCreate",
    "ConciergerieNotificationSettings",
    "Employee",
    "EmployeeCreate",
    "EmployeeNotificationSettings",
    "EmployeeStatus",
    "EmployeeStatusUpdate",
    "Home",
    "HomeCreate",
    "HomeUpdate",
    "Mission",
    "MissionCreate",
    "MissionError",
    "MissionErrorKind",
    "MissionPoints",
    "MissionResult",
    "MissionStatus",
    "MissionUpdate",
    "Notification",
    "NotificationJob",
    "NotificationKind",
    "QuotaDay",
    "RemovalKind",
    "TaskKind",
]
