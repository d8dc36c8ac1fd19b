"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key used to verify the platform JWT tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str | None = Field(
        default="America/Argentina/Buenos_Aires",
        description="IANA timezone used for scheduling and human readable dates",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )
    admin_email: str | None = Field(
        default=None,
        description="Recipient of the job summary reports; reports are skipped when empty",
    )
    base_url: str = Field(
        default="",
        description="Public URL of the web client, used to build links in emails",
    )

    default_days_in_advance: int = Field(
        default=5, gt=0, description="Fallback notice period for every notification kind"
    )
    browser_max_days_in_advance: int = Field(
        default=30, gt=0, description="Upper bound of the browser alert lookahead"
    )
    duplicate_window_seconds: int = Field(
        default=5, ge=0, description="Anti-duplicate window of the notification recorder"
    )
    credential_revalidation_seconds: float = Field(
        default=300, gt=0, description="Interval between websocket credential checks"
    )
    pending_alerts_limit: int = Field(
        default=10, gt=0, description="Maximum alerts flushed on (re)connection"
    )
    judicial_notification_hour: int = Field(
        default=19, ge=0, le=23, description="Local hour at which judicial movements are notified"
    )

    notification_log_retention_days: int = Field(default=30, gt=0)
    alert_retention_days: int = Field(default=30, gt=0)
    judicial_movement_retention_days: int = Field(default=60, gt=0)

    scheduler_enabled: bool = Field(
        default=False, description="Start the cron scheduler together with the API"
    )
    calendar_job_cron: str = "0 8 * * *"
    task_job_cron: str = "0 9 * * *"
    movement_job_cron: str = "0 10 * * *"
    judicial_movement_job_cron: str = "*/15 * * * *"
    folder_inactivity_job_cron: str = "0 11 * * *"
    cleanup_job_cron: str = "0 3 * * *"

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
