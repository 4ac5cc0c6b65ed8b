"""
Configuration settings for lingo-srs.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    srs_db_path: Path = Field(
        default=Path.home() / ".lingo_srs" / "reviews.db",
        description="SQLite database holding review items and the review log",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="WARNING",
        description="Loguru level for CLI output (DEBUG, INFO, WARNING, ERROR)",
    )

    # ========================================
    # SM-2 Scheduling
    # ========================================
    srs_initial_ease: float = Field(
        default=2.5,
        description="Ease factor of a freshly created item",
    )
    srs_minimum_ease: float = Field(
        default=1.3,
        description="Floor for the ease factor",
    )
    srs_lapse_ease_penalty: float = Field(
        default=0.20,
        description="Ease factor lost on a failed review",
    )
    srs_first_interval_days: int = Field(
        default=1,
        description="Interval after the first success since creation or a lapse",
    )
    srs_second_interval_days: int = Field(
        default=6,
        description="Interval after the second consecutive success",
    )
    srs_graduation_interval_days: int = Field(
        default=21,
        description="Interval (inclusive) at which an item counts as graduated",
    )

    # ========================================
    # Study Sessions
    # ========================================
    srs_max_new_per_session: int = Field(
        default=10,
        description="New items introduced per study session",
    )
    srs_max_reviews_per_session: int = Field(
        default=50,
        description="Due reviews included per study session",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
