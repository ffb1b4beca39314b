"""Pydantic models for creating records in database."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from missionboard.domain.task import TaskKind


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_email(v: str) -> str:
    if not _EMAIL_RE.match(v):
        msg = f"Invalid email address: {v}"
        raise ValueError(msg)
    return v


class MissionCreate(BaseModel):
    """Mission fields supplied by a conciergerie.

    Task-set and time-window rules are checked by the state machine so they come back as typed results.
    """

    home_id: str = Field(..., description="Home the mission takes place in")
    tasks: list[TaskKind] = Field(..., description="Kinds of work to perform")
    start_date_time: datetime
    end_date_time: datetime
    allowed_employees: list[str] = Field(default_factory=list, description="Worker allow-list, empty = all")


class HomeCreate(BaseModel):
    """Pydantic model for creating a home record."""

    title: str = Field(..., min_length=1, description="Title, unique per conciergerie")
    description: str = Field(default="", description="Free-text description")
    objectives: list[str] = Field(default_factory=list, description="Points to check before completing")
    images: list[str] = Field(default_factory=list, description="Image references")
    geographic_zone: str = Field(default="", description="Zone where the home is located")
    hours_of_cleaning: float = Field(default=0, ge=0)
    hours_of_gardening: float = Field(default=0, ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Reject blank titles."""
        stripped = v.strip()
        if not stripped:
            msg = "Title must not be blank"
            raise ValueError(msg)
        return stripped

    @field_validator("objectives")
    @classmethod
    def drop_blank_objectives(cls, v: list[str]) -> list[str]:
        return [objective.strip() for objective in v if objective.strip()]


class EmployeeCreate(BaseModel):
    """Pydantic model for a worker registration."""

    first_name: str = Field(..., min_length=1)
    family_name: str = Field(..., min_length=1)
    email: str
    tel: str = ""
    geographic_zone: str = ""
    conciergerie_name: str | None = Field(None, description="Conciergerie the worker asks to join")
    message: str | None = Field(None, description="Message to the conciergerie")
    device_id: str = Field(..., min_length=1, description="Device the registration comes from")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email address shape."""
        return _validate_email(v)


class ConciergerieCreate(BaseModel):
    """Pydantic model for creating a conciergerie record."""

    name: str = Field(..., min_length=1)
    email: str
    tel: str = ""
    color: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email address shape."""
        return _validate_email(v)
