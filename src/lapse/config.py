"""Application configuration and settings management."""
from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lapse.models import FrontmatterKeys

DefaultLabelType = Literal["freeText", "frontmatter", "fileName"]


class Settings(BaseSettings):
    """Project-level settings loaded from environment variables/.env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    vault_dir: Path = Field(Path("."), alias="LAPSE_VAULT_DIR")
    timezone: str = Field("UTC", alias="LAPSE_TIMEZONE")

    cache_file: Path = Field(Path("cache/lapse-cache.json"), alias="LAPSE_CACHE_FILE")
    log_dir: Path = Field(Path("logs"), alias="LAPSE_LOG_DIR")

    start_time_key: str = Field("startTime", alias="LAPSE_START_TIME_KEY")
    end_time_key: str = Field("endTime", alias="LAPSE_END_TIME_KEY")
    entries_key: str = Field("lapseEntries", alias="LAPSE_ENTRIES_KEY")
    total_time_key: str = Field("totalTimeTracked", alias="LAPSE_TOTAL_TIME_KEY")
    project_key: str = Field("project", alias="LAPSE_PROJECT_KEY")
    tags_key: str = Field("tags", alias="LAPSE_TAGS_KEY")

    default_label_type: DefaultLabelType = Field("freeText", alias="LAPSE_DEFAULT_LABEL_TYPE")
    default_label_text: str = Field("", alias="LAPSE_DEFAULT_LABEL_TEXT")
    default_label_frontmatter_key: str = Field("project", alias="LAPSE_DEFAULT_LABEL_FRONTMATTER_KEY")
    hide_timestamps_in_views: bool = Field(True, alias="LAPSE_HIDE_TIMESTAMPS_IN_VIEWS")

    exclude_patterns: List[str] = Field(default_factory=list, alias="LAPSE_EXCLUDE_PATTERNS")
    first_day_of_week: int = Field(1, ge=0, le=6, alias="LAPSE_FIRST_DAY_OF_WEEK")
    time_adjust_minutes: int = Field(5, ge=1, alias="LAPSE_TIME_ADJUST_MINUTES")

    cache_flush_delay: float = Field(2.0, ge=0, alias="LAPSE_CACHE_FLUSH_DELAY")
    cache_retention_days: int = Field(90, ge=1, alias="LAPSE_CACHE_RETENTION_DAYS")
    cache_prune_threshold: int = Field(5000, ge=0, alias="LAPSE_CACHE_PRUNE_THRESHOLD")

    @property
    def frontmatter_keys(self) -> FrontmatterKeys:
        return FrontmatterKeys(
            start_time=self.start_time_key,
            end_time=self.end_time_key,
            entries=self.entries_key,
            total_time=self.total_time_key,
            project=self.project_key,
            tags=self.tags_key,
        )


_SETTINGS: Optional[Settings] = None


def get_settings() -> Settings:
    """Return cached settings instance."""

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings()
    return _SETTINGS


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""

    global _SETTINGS
    _SETTINGS = None


__all__ = ["Settings", "DefaultLabelType", "get_settings", "reset_settings"]
