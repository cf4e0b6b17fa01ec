"""Sprintboard cache configuration.

Settings are loaded from the environment (``SPRINTBOARD_*``) and an optional
``.env`` file. Call ``get_settings.cache_clear()`` in tests after changing the
environment.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the cache engine and the tool server."""

    # Tracker API
    api_base_url: str = "http://localhost:3000/api"
    api_token: Optional[SecretStr] = None
    request_timeout: float = Field(30.0, gt=0, description="Transport timeout in seconds")

    # TTL tiers (seconds): flat lists, board snapshots
    ttl_medium: float = Field(5 * 60, gt=0)
    ttl_long: float = Field(10 * 60, gt=0)

    # Backlog slice of the board is fetched in one page
    backlog_page_limit: int = Field(1000, ge=1)

    # Schedule a forced board refetch after a failed reorder
    refetch_on_failure: bool = True

    # Permission decision handed to the engine by the tool server
    read_only: bool = False

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SPRINTBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process)."""
    return Settings()
