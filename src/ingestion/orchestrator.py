"""
Ingestion orchestrator - the top-level run loop.

Two ingestion modes share one quota budget, one single-flight guard and
the same reconciliation logic:

- channels: resolve each configured channel, then page through its
  uploads with a resumable cursor, filing videos under
  "Channel: <name>".
- categories: run each configured keyword search and file the results
  under the category's title.

Sources are processed sequentially in configuration order. A failing
source is logged and skipped; a failing video is logged and skipped.
Only QuotaExceededError ends a run early, since every later source
would draw on the same exhausted budget.
"""

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

import structlog

from src.catalog.reconciliation import ReconciliationEngine
from src.catalog.repository import CategoryRepository, ChannelRepository
from src.ingestion.config import IngestionConfig
from src.ingestion.cursor import IngestionCursor
from src.observability.logging import bind_context, clear_context
from src.observability.metrics import get_metrics
from src.youtube.client import YouTubeClient
from src.youtube.quota import QuotaExceededError, QuotaGovernor
from src.youtube.schemas import YouTubeVideo

logger = structlog.get_logger(__name__)

MODE_CHANNELS = "channels"
MODE_CATEGORIES = "categories"

TRIGGER_MESSAGES = {
    MODE_CHANNELS: "Channel videos fetched and stored successfully.",
    MODE_CATEGORIES: "Videos fetched and stored successfully.",
}


@dataclass
class IngestionRunResult:
    """Outcome of one run, for logs, metrics and the CLI."""

    mode: str
    skipped: bool = False
    skip_reason: str | None = None
    sources_ok: list[str] = field(default_factory=list)
    sources_failed: list[str] = field(default_factory=list)
    videos_upserted: int = 0
    videos_failed: int = 0
    pages: int = 0
    quota_exhausted: bool = False
    stopped: bool = False
    duration_seconds: float = 0.0


class IngestionOrchestrator:
    """
    Runs channel and category ingestion, never two runs at once.

    Usage:
        orchestrator = IngestionOrchestrator(client, channels, categories, engine)
        result = await orchestrator.run_channels()
        ack = await orchestrator.trigger("categories")
    """

    def __init__(
        self,
        client: YouTubeClient,
        channels: ChannelRepository,
        categories: CategoryRepository,
        reconciler: ReconciliationEngine,
        config: IngestionConfig | None = None,
        quota: QuotaGovernor | None = None,
        stop_event: asyncio.Event | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: YouTube client (its quota governor is used when quota is None)
            channels: Channel repository
            categories: Category repository
            reconciler: Upsert engine for videos
            config: Sources and cadence (defaults from INGESTION_ env)
            quota: Quota governor shared with the client
            stop_event: Set to stop at the next page or source boundary
        """
        self._client = client
        self._channels = channels
        self._categories = categories
        self._reconciler = reconciler
        self._config = config or IngestionConfig()
        self._quota = quota or client.quota
        self._stop_event = stop_event or asyncio.Event()
        self._running = False
        self._metrics = get_metrics()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def quota(self) -> QuotaGovernor:
        return self._quota

    def request_stop(self) -> None:
        """Ask the current run to stop at its next checkpoint."""
        self._stop_event.set()

    def _stop_requested(self) -> bool:
        return self._stop_event.is_set()

    async def run_channels(self) -> IngestionRunResult:
        """Ingest every configured channel."""
        return await self._run(MODE_CHANNELS, self._ingest_channels)

    async def run_categories(self) -> IngestionRunResult:
        """Ingest every configured keyword category."""
        return await self._run(MODE_CATEGORIES, self._ingest_categories)

    async def trigger(self, mode: str) -> dict[str, str]:
        """
        Run one mode on demand and acknowledge completion.

        Per-source outcomes are not reported; they are in the logs and
        in storage.
        """
        if mode == MODE_CHANNELS:
            await self.run_channels()
        elif mode == MODE_CATEGORIES:
            await self.run_categories()
        else:
            raise ValueError(f"Unknown ingestion mode: {mode}")
        return {"message": TRIGGER_MESSAGES[mode]}

    async def _run(
        self,
        mode: str,
        work: Callable[[IngestionRunResult], Awaitable[None]],
    ) -> IngestionRunResult:
        result = IngestionRunResult(mode=mode)

        if self._running:
            logger.warning("Ingestion run already in progress, skipping", mode=mode)
            self._metrics.record_run_skipped(mode, "already_running")
            result.skipped = True
            result.skip_reason = "already_running"
            return result

        self._running = True
        start = time.monotonic()
        bind_context(run_id=uuid.uuid4().hex[:12], mode=mode)

        try:
            if self._quota.near_exhaustion():
                used, total = self._quota.usage()
                logger.warning(
                    "Quota nearly exhausted, skipping run",
                    quota_used=used,
                    quota_limit=total,
                )
                self._metrics.record_run_skipped(mode, "quota")
                result.skipped = True
                result.skip_reason = "quota"
                return result

            logger.info("Ingestion run started")
            await work(result)

            used, total = self._quota.usage()
            logger.info(
                "Ingestion run completed",
                sources_ok=len(result.sources_ok),
                sources_failed=len(result.sources_failed),
                videos_upserted=result.videos_upserted,
                videos_failed=result.videos_failed,
                quota_used=used,
                quota_limit=total,
            )
            return result

        except Exception as e:
            logger.error("Ingestion run failed", error=str(e), exc_info=True)
            raise

        finally:
            result.duration_seconds = time.monotonic() - start
            if not result.skipped:
                self._metrics.record_run(mode, result.duration_seconds)
            self._running = False
            clear_context("run_id", "mode")

    def _should_stop_before_source(self, result: IngestionRunResult) -> bool:
        if self._stop_requested():
            logger.info("Stop requested, ending run")
            result.stopped = True
            return True
        if self._quota.near_exhaustion():
            logger.warning("Quota nearly exhausted, ending run early")
            result.quota_exhausted = True
            return True
        return False

    def _record_source_failure(
        self, result: IngestionRunResult, source: str, error: Exception
    ) -> None:
        result.sources_failed.append(source)
        self._metrics.record_source_error(result.mode, type(error).__name__)

    # --- channels ---------------------------------------------------------------

    async def _ingest_channels(self, result: IngestionRunResult) -> None:
        for name in self._config.channels:
            if self._should_stop_before_source(result):
                break

            try:
                await self._ingest_channel(name, result)
                result.sources_ok.append(name)
            except QuotaExceededError as e:
                logger.warning("Quota exceeded, ending run", channel=name, error=str(e))
                self._record_source_failure(result, name, e)
                result.quota_exhausted = True
                break
            except Exception as e:
                logger.error(
                    "Channel ingestion failed",
                    channel=name,
                    error=str(e),
                    exc_info=True,
                )
                self._record_source_failure(result, name, e)

    async def _ingest_channel(self, name: str, result: IngestionRunResult) -> None:
        info = await self._client.resolve_channel(name)

        channel = await self._channels.find_or_create(info.id, info.name)
        category = await self._categories.find_or_create(
            f"{self._config.channel_title_prefix}{name}"
        )

        channel.name = info.name
        channel.description = info.description
        channel.thumbnail_url = info.thumbnail_url
        channel.social_links = info.social_links
        channel.last_fetched_at = datetime.now(timezone.utc)
        channel = await self._channels.save(channel)

        cursor = IngestionCursor.from_channel(channel)
        log = logger.bind(channel=name, youtube_channel_id=info.id)
        log.info("Fetching channel videos", state=cursor.state.value)

        page_token: str | None = None
        upserted_before = result.videos_upserted

        while True:
            page = await self._client.get_channel_videos(
                info.id,
                page_token=page_token,
                last_seen_id=cursor.last_seen_for_fetch,
            )
            result.pages += 1

            await self._upsert_all(page.videos, category.id, channel.id, result)

            cursor.advance(page)
            channel = await self._channels.save(cursor.apply(channel))

            if cursor.finished:
                break
            if self._stop_requested():
                log.info("Stop requested, leaving channel mid-walk")
                result.stopped = True
                break
            if self._quota.near_exhaustion():
                log.warning("Quota nearly exhausted, stopping channel paging")
                result.quota_exhausted = True
                break

            page_token = page.next_page_token

        log.info(
            "Channel ingested",
            videos=result.videos_upserted - upserted_before,
            state=cursor.state.value,
            total_videos=cursor.total_videos,
        )

    # --- categories -------------------------------------------------------------

    async def _ingest_categories(self, result: IngestionRunResult) -> None:
        for source in self._config.categories:
            if self._should_stop_before_source(result):
                break

            try:
                category = await self._categories.find_or_create(source.title)
                videos = await self._client.search_videos(
                    source.query, self._config.category_max_results
                )
                upserted = await self._upsert_all(videos, category.id, None, result)
                logger.info(
                    "Category ingested",
                    category=source.title,
                    query=source.query,
                    videos=upserted,
                )
                result.sources_ok.append(source.title)
            except QuotaExceededError as e:
                logger.warning(
                    "Quota exceeded, ending run", category=source.title, error=str(e)
                )
                self._record_source_failure(result, source.title, e)
                result.quota_exhausted = True
                break
            except Exception as e:
                logger.error(
                    "Category ingestion failed",
                    category=source.title,
                    error=str(e),
                    exc_info=True,
                )
                self._record_source_failure(result, source.title, e)

    # --- shared -----------------------------------------------------------------

    async def _upsert_all(
        self,
        videos: list[YouTubeVideo],
        category_id: UUID,
        channel_id: UUID | None,
        result: IngestionRunResult,
    ) -> int:
        """Upsert each video; a failing video is logged and skipped."""
        upserted = 0
        for video in videos:
            try:
                await self._reconciler.upsert(video, category_id, channel_id)
                upserted += 1
            except Exception as e:
                logger.error(
                    "Failed to store video",
                    youtube_id=video.youtube_id,
                    error=str(e),
                    exc_info=True,
                )
                result.videos_failed += 1
                self._metrics.record_videos_failed(result.mode)

        result.videos_upserted += upserted
        self._metrics.record_videos_upserted(result.mode, upserted)
        return upserted
