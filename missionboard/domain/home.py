"""Home (managed property) domain model."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from missionboard.domain.stored import decode_stored_json


class Home(BaseModel):
    """Property managed by a conciergerie."""

    id: str = Field(..., description="Unique home ID")
    title: str = Field(..., description="Title, unique per conciergerie (case-insensitive)")
    description: str = Field(default="", description="Free-text description")
    objectives: list[str] = Field(default_factory=list, description="Points to check before completing a mission")
    images: list[str] = Field(default_factory=list, description="Image references")
    geographic_zone: str = Field(default="", description="Zone where the home is located")
    hours_of_cleaning: float = Field(default=0, ge=0, description="Hours a cleaning task takes here")
    hours_of_gardening: float = Field(default=0, ge=0, description="Hours a gardening task takes here")
    conciergerie_name: str = Field(..., description="Owning conciergerie")
    modified_date: datetime | None = Field(default=None, description="Last modification time")

    @field_validator("objectives", "images", mode="before")
    @classmethod
    def decode_lists(cls, v: object) -> object:
        """Accept lists stored as JSON text."""
        return decode_stored_json(v) or []
