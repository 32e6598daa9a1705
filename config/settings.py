"""Application settings using Pydantic."""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SWIPEFEED_",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///swipefeed.db",
        description="SQLAlchemy database URL",
    )

    # Remote API (HTTP backend)
    api_base_url: Optional[str] = Field(
        default=None,
        description="Root URL of the matching/swipe REST API",
    )
    api_timeout_seconds: float = Field(
        default=10.0,
        description="Total timeout for a single API request (seconds)",
    )

    # Feed
    feed_page_size: int = Field(
        default=10,
        description="Number of postings requested per feed page",
    )
    replenish_threshold: int = Field(
        default=3,
        description="Fetch the next page when this many cards or fewer remain",
    )
    matched_jobs_cache_ttl_seconds: int = Field(
        default=180,
        description="How long ranked feed pages stay cached (seconds)",
    )

    # Swipe quota
    default_daily_swipe_limit: int = Field(
        default=10,
        description="Swipes granted per day to a user without a plan",
    )
    unlimited_swipe_sentinel: int = Field(
        default=999999,
        description="Remaining-swipes value treated as unlimited",
    )

    # Scoring
    recency_window_days: int = Field(
        default=30,
        description="Postings older than this get no recency bonus",
    )
    reason_threshold: float = Field(
        default=70.0,
        description="Component score needed to list a match reason",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: Optional[str] = Field(
        default=None,
        description="Optional rotating log file path",
    )

    # Paths
    config_dir: Path = Field(
        default=Path(__file__).parent,
        description="Configuration directory",
    )

    @property
    def profile_path(self) -> Path:
        """Path to the profile.yaml file."""
        return self.config_dir / "profile.yaml"

    @property
    def project_root(self) -> Path:
        """Project root directory."""
        return self.config_dir.parent


# Global settings instance
settings = Settings()
