"""
Configuration for the dialog controls runtime.

Settings are read from ``DIALOG_CONTROLS_*`` environment variables or a
local ``.env`` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DIALOG_CONTROLS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["development", "production", "test"] = "development"

    # Logging
    log_level: str = "info"
    log_format: Literal["json", "pretty"] = "json"

    # Turn processing
    validate_state_roundtrip: bool = True
    internal_error_behavior: Literal["produce_response", "rethrow"] = "produce_response"

    # State persistence
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL for session state")
    state_key_prefix: str = "dialog-controls"
    state_ttl_seconds: int = 86400  # 24 hours

    # Controls
    default_page_size: int = Field(default=3, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
