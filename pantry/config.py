"""
Application Configuration
Settings management using Pydantic for environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (PANTRY_ prefix).
    """

    # Application
    app_name: str = "Pantry Expiry Notifier"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # Storage
    database_url: str = "sqlite:///notifications.db"
    data_dir: Path = Path(__file__).parent.parent / "data"

    # Evaluation
    evaluation_interval_hours: float = 6
    scheduler_enabled: bool = True
    default_reminder_days: int = 3

    # Delivery
    email_provider: str = "console"  # console, resend
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "Pantry Manager <onboarding@resend.dev>"
    delivery_timeout_seconds: float = 10.0
    sms_enabled: bool = False

    model_config = SettingsConfigDict(
        env_prefix="PANTRY_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
