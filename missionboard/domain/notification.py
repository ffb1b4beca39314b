"""Notification variants and retry-queue job model.

Each business event has its own payload model; `Notification` is the tagged union the
retry queue stores and re-sends without inspecting payload shapes at runtime.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from missionboard.domain.conciergerie import Conciergerie
from missionboard.domain.employee import Employee
from missionboard.domain.home import Home
from missionboard.domain.mission import Mission, MissionStatus
from missionboard.domain.stored import decode_stored_json


class NotificationKind(StrEnum):
    """Business events that produce an outbound email."""

    VERIFICATION = "verification"
    REGISTRATION = "registration"
    ACCEPTANCE = "acceptance"
    MISSION_STATUS = "mission_status"
    LATE_COMPLETION = "late_completion"
    MISSION_ACCEPTANCE = "mission_acceptance"
    MISSION_UPDATED = "mission_updated"
    MISSION_REMOVED = "mission_removed"


class RemovalKind(StrEnum):
    """Why a worker lost a mission."""

    DELETED = "deleted"
    CANCELED = "canceled"


class VerificationNotification(BaseModel):
    """Account verification link sent to a new conciergerie."""

    kind: Literal[NotificationKind.VERIFICATION] = NotificationKind.VERIFICATION
    conciergerie: Conciergerie
    user_id: str


class RegistrationNotification(BaseModel):
    """New worker asking to join a conciergerie."""

    kind: Literal[NotificationKind.REGISTRATION] = NotificationKind.REGISTRATION
    conciergerie: Conciergerie
    employee: Employee


class AcceptanceNotification(BaseModel):
    """Worker approval decision."""

    kind: Literal[NotificationKind.ACCEPTANCE] = NotificationKind.ACCEPTANCE
    employee: Employee
    conciergerie: Conciergerie
    missions_count: int = 0
    is_accepted: bool


class MissionStatusNotification(BaseModel):
    """Mission accepted, started or completed, sent to the owning conciergerie."""

    kind: Literal[NotificationKind.MISSION_STATUS] = NotificationKind.MISSION_STATUS
    mission: Mission
    home: Home
    employee: Employee
    conciergerie: Conciergerie
    status: MissionStatus


class LateCompletionNotification(BaseModel):
    """Mission ended without being completed."""

    kind: Literal[NotificationKind.LATE_COMPLETION] = NotificationKind.LATE_COMPLETION
    mission: Mission
    home: Home
    employee: Employee
    conciergerie: Conciergerie


class MissionAcceptanceNotification(BaseModel):
    """Confirmation sent to the worker who accepted a mission."""

    kind: Literal[NotificationKind.MISSION_ACCEPTANCE] = NotificationKind.MISSION_ACCEPTANCE
    mission: Mission
    home: Home
    employee: Employee
    conciergerie: Conciergerie


class MissionUpdatedNotification(BaseModel):
    """Edited mission; the worker lost the assignment and may accept it again."""

    kind: Literal[NotificationKind.MISSION_UPDATED] = NotificationKind.MISSION_UPDATED
    mission: Mission
    home: Home
    employee: Employee
    conciergerie: Conciergerie
    changes: list[str] = Field(default_factory=list, description="Human-readable list of changed fields")


class MissionRemovedNotification(BaseModel):
    """Mission deleted or canceled while assigned to the worker."""

    kind: Literal[NotificationKind.MISSION_REMOVED] = NotificationKind.MISSION_REMOVED
    mission: Mission
    home: Home
    employee: Employee
    conciergerie: Conciergerie
    removal: RemovalKind


Notification = Annotated[
    VerificationNotification
    | RegistrationNotification
    | AcceptanceNotification
    | MissionStatusNotification
    | LateCompletionNotification
    | MissionAcceptanceNotification
    | MissionUpdatedNotification
    | MissionRemovedNotification,
    Field(discriminator="kind"),
]

notification_adapter: TypeAdapter[Notification] = TypeAdapter(Notification)


class NotificationJob(BaseModel):
    """Previously failed notification waiting to be re-sent."""

    id: str = Field(..., description="Unique job ID")
    kind: NotificationKind
    payload: Notification = Field(..., description="Everything needed to re-render and re-send")
    created_at: datetime
    last_attempt: datetime
    attempts: int = Field(default=1, ge=0, description="Send attempts made so far")

    @field_validator("payload", mode="before")
    @classmethod
    def decode_payload(cls, v: object) -> object:
        """Accept payloads stored as JSON text."""
        return decode_stored_json(v)
