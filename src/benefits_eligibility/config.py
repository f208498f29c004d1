"""
Engine settings.

Settings can be overridden with ELIGIBILITY_* environment variables or a
.env file. Rule tables are never settings: they are loaded as data and
passed to every calculation explicitly.
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Environment-driven engine settings."""

    model_config = SettingsConfigDict(
        env_prefix="ELIGIBILITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Directory of rule-table JSON files; packaged tables when unset
    rules_dir: Optional[Path] = None

    # Snapshot freshness window
    snapshot_ttl_days: int = 30

    log_level: str = "INFO"

    @property
    def snapshot_ttl(self) -> timedelta:
        return timedelta(days=self.snapshot_ttl_days)


@lru_cache()
def get_settings() -> EngineSettings:
    """Cached settings instance, loaded once per process."""
    return EngineSettings()
