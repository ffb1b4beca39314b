"""Pydantic models for service layer return types."""

from pydantic import BaseModel, Field

from missionboard.domain.notification import NotificationKind


class NotificationResult(BaseModel):
    """Outcome of a notification dispatch."""

    kind: NotificationKind
    recipient: str | None = None
    sent: bool = Field(default=False, description="Delivered on this attempt")
    queued: bool = Field(default=False, description="Handed to the retry queue after a failed attempt")
    skipped: bool = Field(default=False, description="Recipient opted out of this kind of email")
    job_id: str | None = None
    error: str | None = None


class RetryReport(BaseModel):
    """Summary of one retry-queue scan."""

    scanned: int = 0
    sent: int = 0
    failed: int = 0
    dropped: int = 0
    waiting: int = 0
    vanished: int = 0


class LateMissionReport(BaseModel):
    """Summary of one late-mission check."""

    late: int = 0
    notified: int = 0
    skipped: int = 0
