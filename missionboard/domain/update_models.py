"""Update models for database operations."""

from datetime import datetime

from pydantic import BaseModel, Field

from missionboard.domain.task import TaskKind


class MissionUpdate(BaseModel):
    """Partial mission edit; unset fields keep their current value."""

    home_id: str | None = None
    tasks: list[TaskKind] | None = None
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    allowed_employees: list[str] | None = None


class HomeUpdate(BaseModel):
    """Partial home edit."""

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    objectives: list[str] | None = None
    images: list[str] | None = None
    geographic_zone: str | None = None
    hours_of_cleaning: float | None = Field(None, ge=0)
    hours_of_gardening: float | None = Field(None, ge=0)


class EmployeeStatusUpdate(BaseModel):
    """DTO for a conciergerie's decision on a worker."""

    status: str
