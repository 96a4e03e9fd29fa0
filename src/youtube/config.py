"""
YouTube Data API client configuration.

Quota costs follow the published YouTube Data API v3 cost table:
a search.list call costs 100 units, and detail lookups are budgeted at
one unit per video. The default daily limit is kept well below the
standard 10,000 units so that manual triggers and retries still fit.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class YouTubeConfig(BaseSettings):
    """
    Configuration for the YouTube client, quota governor and rate limiter.

    All settings can be overridden via environment variables prefixed with YOUTUBE_.

    Example:
        YOUTUBE_DAILY_QUOTA_LIMIT=10000
        YOUTUBE_MIN_VIDEO_LENGTH_SECONDS=600
    """

    model_config = SettingsConfigDict(
        env_prefix="YOUTUBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_url: str = Field(
        default="https://www.googleapis.com/youtube/v3",
        description="Base URL of the YouTube Data API",
    )

    # Quota
    daily_quota_limit: int = Field(
        default=5000,
        ge=1,
        description="Maximum quota units consumed per UTC day",
    )
    search_cost: int = Field(
        default=100,
        ge=0,
        description="Quota units charged for one search.list call",
    )
    video_details_cost: int = Field(
        default=1,
        ge=0,
        description="Quota units budgeted per video in a details lookup",
    )
    quota_warning_threshold: float = Field(
        default=0.9,
        gt=0.0,
        le=1.0,
        description="Fraction of the daily limit after which runs stop early",
    )

    # Pacing
    request_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Minimum delay between consecutive API requests",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request HTTP timeout",
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Transport-level retries on 429/5xx and timeouts",
    )

    # Result shaping
    page_size: int = Field(
        default=50,
        ge=1,
        le=50,
        description="Videos requested per search page (API maximum is 50)",
    )
    min_video_length_seconds: int = Field(
        default=15 * 60,
        ge=0,
        description="Videos shorter than this are dropped",
    )
