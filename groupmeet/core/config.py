"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Group Meetings"
    debug: bool = False
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./groupmeet.db"

    # Reminder pipeline
    reminder_poll_minutes: int = 60
    reminder_window_start_hours: int = 47
    reminder_window_end_hours: int = 49
    token_ttl_days: int = 7
    confirmation_base_url: str = "http://localhost:8000"

    # Limits on leader-supplied reminder content
    max_custom_description_length: int = 5000
    max_custom_message_length: int = 2000


settings = Settings()
