"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding=ENV_FILE_ENCODING,
        extra="ignore",
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key used to verify realtime bearer tokens", min_length=1
    )
    app_timezone: str = Field(
        default="America/Bogota",
        description="IANA timezone in which notification timestamps are stored",
    )
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the web client, used for deep links in emails",
    )
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Origins allowed to call the API from a browser",
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

    vapid_private_key: str | None = Field(
        default=None,
        description="VAPID private key used to sign Web Push requests",
    )
    vapid_public_key: str | None = Field(
        default=None,
        description="VAPID public key handed to browsers when they subscribe",
    )
    vapid_claims_email: str | None = Field(
        default=None,
        description="Contact address sent in the VAPID ``sub`` claim",
    )

    twilio_account_sid: str | None = Field(default=None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(default=None, description="Twilio auth token")
    twilio_whatsapp_number: str | None = Field(
        default=None,
        description="WhatsApp-enabled sender number registered in Twilio (E.164)",
    )

    notification_channel_timeout_seconds: float = Field(
        default=8.0,
        ge=1,
        le=60,
        description="Upper bound for a single channel send before it counts as failed",
    )
    notification_retention_days: int = Field(
        default=90,
        gt=0,
        description="Notifications older than this many days are purged automatically",
    )
    notification_purge_interval_minutes: int = Field(
        default=60,
        gt=0,
        description="How often the retention job runs",
    )
    notification_page_size_max: int = Field(
        default=100,
        gt=0,
        description="Largest page size accepted when listing notifications",
    )
    notification_channel_policy: dict[str, list[str]] | None = Field(
        default=None,
        description="Optional override of the priority to channel mapping (JSON)",
    )
    email_notification_roles: list[str] = Field(
        default_factory=list,
        description="Roles allowed to receive email notifications; empty means every role",
    )

    @field_validator("app_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        value = value.strip()
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @model_validator(mode="after")
    def _validate_twilio_triplet(self) -> "Settings":
        values = (
            self.twilio_account_sid,
            self.twilio_auth_token,
            self.twilio_whatsapp_number,
        )
        if any(values) and not all(values):
            raise ValueError(
                "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_WHATSAPP_NUMBER "
                "must all be provided to enable WhatsApp"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
