"""Application configuration settings."""

import typing as t

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Kitchentory Alerts"
    app_version: str = "1.0.0"
    app_url: str = "http://localhost:8000"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./kitchentory_alerts.db"

    # Local timezone used for calendar days and quiet hours
    timezone: str = "UTC"

    # Expiration alerts
    check_expiration_interval_hours: int = (
        24  # How often to check for expiring items
    )
    cleanup_interval_hours: int = 24
    alert_retention_days: int = 30
    notification_timeout_seconds: float = 10.0

    # CORS
    cors_origins: t.List[str] = ["*"]

    # Email notifications (optional)
    smtp_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = "kitchentory@localhost"
    alert_email_recipient: str = ""


SETTINGS = Settings()
