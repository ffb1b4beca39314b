"""Employee (field worker) domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from missionboard.domain.stored import decode_stored_json


class EmployeeStatus(StrEnum):
    """Approval status of a worker."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EmployeeNotificationSettings(BaseModel):
    """Which mission events a worker wants to be emailed about."""

    accepted_missions: bool = True
    mission_changed: bool = True
    mission_deleted: bool = True
    missions_canceled: bool = True


class Employee(BaseModel):
    """Worker who accepts and performs missions."""

    id: str = Field(..., description="Unique employee ID")
    first_name: str
    family_name: str
    email: str
    tel: str = ""
    geographic_zone: str = ""
    conciergerie_name: str | None = Field(default=None, description="Preferred conciergerie")
    message: str | None = None
    device_ids: list[str] = Field(default_factory=list, description="Devices allowed to act as this worker")
    status: EmployeeStatus = Field(default=EmployeeStatus.PENDING)
    notification_settings: EmployeeNotificationSettings = Field(default_factory=EmployeeNotificationSettings)
    created: datetime | None = None

    @field_validator("device_ids", mode="before")
    @classmethod
    def decode_device_ids(cls, v: object) -> object:
        """Accept device lists stored as JSON text."""
        return decode_stored_json(v) or []

    @field_validator("notification_settings", mode="before")
    @classmethod
    def decode_settings(cls, v: object) -> object:
        """Accept settings stored as JSON text."""
        return decode_stored_json(v) or {}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.family_name}"
