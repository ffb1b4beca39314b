"""Configuration management for missionboard."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    sqlite_db_path: str = Field(default="./data/missionboard.db", description="SQLite database file path")

    # Calendar
    timezone: str = Field(
        default="Europe/Paris", description="Time zone used to cut timestamps into calendar days for quotas"
    )

    # Workload rules
    daily_points_limit: int = Field(default=3, description="Maximum mission points per worker per calendar day")
    min_mission_hours: int = Field(default=1, description="Minimum span between mission start and end (in hours)")

    # Notification delivery
    notification_retry_interval_minutes: int = Field(
        default=10, description="Minimum delay between two attempts of the same notification"
    )
    notification_max_attempts: int = Field(default=20, description="Attempts after which a notification is dropped")
    notification_scan_interval_seconds: int = Field(
        default=60, description="How often the retry queue is scanned for due notifications"
    )
    late_mission_check_minutes: int = Field(default=60, description="How often late missions are checked")

    # Email API Configuration
    email_api_url: str = Field(default="https://api.resend.com/emails", description="Transactional email endpoint")
    email_api_key: str | None = Field(default=None, description="Transactional email API key")
    email_from: str = Field(
        default="Job Conciergerie <noreply@job-conciergerie.fr>", description="Sender address for outgoing emails"
    )
    app_base_url: str = Field(default="https://job-conciergerie.fr", description="Public URL used in email links")

    # Observability
    environment: str = Field(default="production", description="Deployment environment reported to Logfire")
    log_level: str = Field(default="INFO", description="Root log level")
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_FORBIDDEN: int = 403
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_UNPROCESSABLE: int = 422
    HTTP_SERVER_ERROR: int = 500
    HTTP_SERVICE_UNAVAILABLE: int = 503

    # Task hours that do not depend on the property
    ARRIVAL_HOURS: float = 0.5
    DEPARTURE_HOURS: float = 0.5

    # Float comparison slack for fractional points
    POINTS_EPSILON: float = 1e-9

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Page size for listings and full-snapshot reads

    # Scheduler job ids
    NOTIFICATION_RETRY_JOB_ID: str = "notification_retry_scan"
    LATE_MISSION_JOB_ID: str = "late_mission_check"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
