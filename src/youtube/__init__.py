"""YouTube Data API access - quota, pacing, transport and normalization."""

from src.youtube.client import ChannelNotFoundError, YouTubeClient
from src.youtube.config import YouTubeConfig
from src.youtube.http_client import HTTPClient, HTTPClientError, RateLimitError, RetryConfig
from src.youtube.quota import QuotaExceededError, QuotaGovernor, UpstreamQuotaExceededError
from src.youtube.rate_limiter import RateLimiter
from src.youtube.schemas import ChannelVideosPage, YouTubeChannel, YouTubeVideo

__all__ = [
    "ChannelNotFoundError",
    "ChannelVideosPage",
    "HTTPClient",
    "HTTPClientError",
    "QuotaExceededError",
    "QuotaGovernor",
    "RateLimitError",
    "RateLimiter",
    "RetryConfig",
    "UpstreamQuotaExceededError",
    "YouTubeChannel",
    "YouTubeClient",
    "YouTubeConfig",
    "YouTubeVideo",
]
