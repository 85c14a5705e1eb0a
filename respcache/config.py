"""
Application settings loaded from environment variables.
"""

import os
from datetime import timedelta

from pydantic import BaseModel, Field


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Cache service settings."""
    database_url: str
    cache_ttl_seconds: int = Field(7200, gt=0)
    sweep_interval_seconds: int = Field(3600, gt=0)
    sweep_on_start: bool = False
    log_level: str = "INFO"

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the environment.

        Raises:
            ValueError: If DATABASE_URL is not set or a value is invalid
        """
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL environment variable is required")

        return cls(
            database_url=database_url,
            cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "7200")),
            sweep_interval_seconds=int(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "3600")),
            sweep_on_start=_env_flag("CACHE_SWEEP_ON_START", False),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
