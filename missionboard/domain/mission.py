"""Mission domain models, enums and transition results."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from missionboard.domain.stored import decode_stored_json
from missionboard.domain.task import TaskKind


class MissionStatus(StrEnum):
    """Lifecycle status of an assigned mission. No status and no worker means available."""

    ACCEPTED = "accepted"
    STARTED = "started"
    COMPLETED = "completed"


class Mission(BaseModel):
    """Time-boxed job on one home."""

    id: str = Field(..., description="Unique mission ID")
    home_id: str = Field(..., description="Home the mission takes place in")
    tasks: list[TaskKind] = Field(..., description="Kinds of work to perform (unordered, unique)")
    start_date_time: datetime
    end_date_time: datetime
    conciergerie_name: str = Field(..., description="Owning conciergerie")
    employee_id: str | None = Field(default=None, description="Assigned worker")
    status: MissionStatus | None = Field(default=None)
    allowed_employees: list[str] = Field(default_factory=list, description="Workers allowed to see it, empty = all")
    hours: float = Field(default=0, description="Estimated hours (sum of task hours)")
    late_notified: bool = Field(default=False, description="Late-completion email already sent")
    modified_date: datetime | None = None

    @field_validator("tasks", "allowed_employees", mode="before")
    @classmethod
    def decode_lists(cls, v: object) -> object:
        """Accept lists stored as JSON text."""
        return decode_stored_json(v) or []

    @field_validator("employee_id", mode="before")
    @classmethod
    def empty_employee_is_none(cls, v: object) -> object:
        """Treat an empty worker reference as unassigned."""
        if v == "":
            return None
        return str(v) if isinstance(v, int) else v

    @property
    def is_available(self) -> bool:
        """True when nobody holds the mission."""
        return self.employee_id is None and self.status is None

    @property
    def is_completed(self) -> bool:
        return self.status == MissionStatus.COMPLETED


class MissionPoints(BaseModel):
    """Workload weight of a mission."""

    total: int = Field(..., description="Sum of task points")
    per_day: float = Field(..., description="Share of the total per calendar day, capped at the daily limit")


class QuotaDay(BaseModel):
    """One calendar day on which accepting a mission would exceed the daily limit."""

    day: date
    current_points: float = Field(..., description="Points the worker already has that day")
    mission_points: float = Field(..., description="Points the mission would add that day")
    limit: int = Field(..., description="Daily points limit")

    @property
    def total_points(self) -> float:
        return self.current_points + self.mission_points


class MissionErrorKind(StrEnum):
    """Why a mission transition was refused."""

    NOT_FOUND = "not_found"
    NOT_OWNER = "not_owner"
    NOT_AUTHORIZED = "not_authorized"
    INVALID_TRANSITION = "invalid_transition"
    DUPLICATE_MISSION = "duplicate_mission"
    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_ASSIGNED_WORKER = "not_assigned_worker"
    TOO_EARLY_TO_START = "too_early_to_start"
    VALIDATION_ERROR = "validation_error"
    STORAGE_ERROR = "storage_error"


class MissionError(BaseModel):
    """Typed rejection of a transition."""

    kind: MissionErrorKind
    message: str
    quota_days: list[QuotaDay] = Field(default_factory=list, description="Offending days for quota_exceeded")


class MissionResult(BaseModel):
    """Outcome of a mission transition."""

    success: bool = Field(..., description="Whether the transition was committed")
    mission: Mission | None = Field(None, description="Mission after the transition (before purge on delete)")
    error: MissionError | None = Field(None, description="Rejection details if not committed")

    @classmethod
    def ok(cls, mission: Mission) -> "MissionResult":
        return cls(success=True, mission=mission)

    @classmethod
    def fail(cls, kind: MissionErrorKind, message: str, *, quota_days: list[QuotaDay] | None = None) -> "MissionResult":
        return cls(success=False, error=MissionError(kind=kind, message=message, quota_days=quota_days or []))
