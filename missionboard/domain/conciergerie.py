"""Conciergerie domain models."""

from pydantic import BaseModel, Field, field_validator

from missionboard.domain.stored import decode_stored_json


class ConciergerieNotificationSettings(BaseModel):
    """Which mission events a conciergerie wants to be emailed about."""

    accepted_missions: bool = True
    started_missions: bool = True
    completed_missions: bool = True
    missions_ended_without_completion: bool = True


class Conciergerie(BaseModel):
    """Property-management company posting missions."""

    id: str = Field(..., description="Unique conciergerie ID")
    name: str = Field(..., description="Unique conciergerie name, used as owner reference")
    email: str = Field(..., description="Contact email")
    tel: str = Field(default="", description="Contact phone")
    color: str = Field(default="", description="Display color")
    notification_settings: ConciergerieNotificationSettings = Field(default_factory=ConciergerieNotificationSettings)

    @field_validator("notification_settings", mode="before")
    @classmethod
    def decode_settings(cls, v: object) -> object:
        """Accept settings stored as JSON text."""
        return decode_stored_json(v) or {}
