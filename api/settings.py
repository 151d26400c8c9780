"""
Application configuration loaded from environment variables (prefix CSV_STUDIO_).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Backend settings. Values come from the environment or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="CSV_STUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "CSV Data Studio API"
    app_version: str = "1.0.0"

    # Sessions
    session_ttl_hours: float = Field(default=24, gt=0)
    cleanup_interval_minutes: float = Field(default=60, gt=0)

    # Uploads
    max_upload_mb: float = Field(default=10, gt=0)

    # CORS: React dev server ports, same range as the grid frontend uses
    allowed_origins: List[str] = Field(
        default=[f"http://localhost:{port}" for port in range(5173, 5183)]
        + [f"http://127.0.0.1:{port}" for port in range(5173, 5183)]
        + ["http://localhost:3000"]
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
