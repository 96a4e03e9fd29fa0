"""
Prometheus metrics for monitoring the ingestion pipeline.

Defines and exposes metrics for:
- YouTube API quota consumption
- API call volume per endpoint
- Video upsert outcomes
- Per-source errors
- Run duration and skipped runs

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for run duration histograms (in seconds)
RUN_DURATION_BUCKETS = (1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the video catalog pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_api_call("search")
        metrics.record_videos_upserted("channels", 12)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Quota
        self.quota_used = Gauge(
            "video_catalog_youtube_quota_used",
            "YouTube API quota units reserved in the current UTC day",
        )

        self.quota_limit = Gauge(
            "video_catalog_youtube_quota_limit",
            "YouTube API daily quota limit",
        )

        self.api_calls = Counter(
            "video_catalog_youtube_api_calls_total",
            "Total YouTube Data API calls",
            ["endpoint"],  # search, videos, channels
        )

        # Video counters
        self.videos_upserted = Counter(
            "video_catalog_videos_upserted_total",
            "Total videos inserted or updated",
            ["mode"],  # channels, categories
        )

        self.videos_failed = Counter(
            "video_catalog_videos_failed_total",
            "Total videos that failed to persist",
            ["mode"],
        )

        # Source health
        self.source_errors = Counter(
            "video_catalog_source_errors_total",
            "Total sources aborted by an error",
            ["mode", "error_type"],
        )

        # Runs
        self.run_duration = Histogram(
            "video_catalog_run_duration_seconds",
            "Wall time of an ingestion run",
            ["mode"],
            buckets=RUN_DURATION_BUCKETS,
        )

        self.runs_skipped = Counter(
            "video_catalog_runs_skipped_total",
            "Ingestion runs skipped before doing any work",
            ["mode", "reason"],  # already_running, quota
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def set_quota_usage(self, used: int, limit: int) -> None:
        """Publish the quota governor's current usage."""
        self.quota_used.set(used)
        self.quota_limit.set(limit)

    def record_api_call(self, endpoint: str) -> None:
        self.api_calls.labels(endpoint=endpoint).inc()

    def record_videos_upserted(self, mode: str, count: int = 1) -> None:
        if count:
            self.videos_upserted.labels(mode=mode).inc(count)

    def record_videos_failed(self, mode: str, count: int = 1) -> None:
        if count:
            self.videos_failed.labels(mode=mode).inc(count)

    def record_source_error(self, mode: str, error_type: str) -> None:
        """
        Record a source aborted by an error.

        Args:
            mode: Ingestion mode (channels, categories)
            error_type: Exception class name
        """
        self.source_errors.labels(mode=mode, error_type=error_type).inc()

    def record_run(self, mode: str, duration: float) -> None:
        self.run_duration.labels(mode=mode).observe(duration)

    def record_run_skipped(self, mode: str, reason: str) -> None:
        self.runs_skipped.labels(mode=mode, reason=reason).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
