"""
Application configuration using Pydantic Settings.

Values are read from environment variables (and an optional .env file).
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./daylit.db"

    # ===========================================
    # Planning window
    # ===========================================
    # Wall-clock bounds of the working day (HH:MM)
    DAY_START: str = "08:00"
    DAY_END: str = "18:00"

    # IANA timezone used to resolve "today" and "now"
    TIMEZONE: str = "UTC"

    # ===========================================
    # Feedback analysis
    # ===========================================
    # Number of recent rated slots considered per task
    FEEDBACK_HISTORY_LIMIT: int = Field(10, ge=1)

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(default=["http://localhost:5173"])


@lru_cache()
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return Settings()
