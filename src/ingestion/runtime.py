"""
Wiring for a running ingestion process.

IngestionRuntime owns the long-lived resources (database pool, HTTP
client, quota reset task) and assembles the orchestrator from them, so
the CLI and the admin API share one quota governor and one single-flight
guard per process. The quota is reset at UTC midnight for as long as the
runtime is open, whichever entry point opened it.

Usage:
    async with IngestionRuntime() as runtime:
        result = await runtime.orchestrator.run_channels()
"""

import asyncio
import logging
from types import TracebackType

from src.catalog.reconciliation import ReconciliationEngine
from src.catalog.repository import (
    CategoryRepository,
    ChannelRepository,
    VideoRepository,
    create_catalog_tables,
)
from src.config.settings import Settings, get_settings
from src.ingestion.config import IngestionConfig
from src.ingestion.orchestrator import IngestionOrchestrator
from src.storage.database import Database
from src.youtube.client import YouTubeClient
from src.youtube.config import YouTubeConfig
from src.youtube.http_client import HTTPClient, RetryConfig
from src.youtube.quota import QuotaGovernor
from src.youtube.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class IngestionRuntime:
    """Async context manager holding the pipeline's resources."""

    def __init__(
        self,
        settings: Settings | None = None,
        youtube_config: YouTubeConfig | None = None,
        ingestion_config: IngestionConfig | None = None,
        database: Database | None = None,
        stop_event: asyncio.Event | None = None,
    ):
        self.settings = settings or get_settings()
        self.youtube_config = youtube_config or YouTubeConfig()
        self.ingestion_config = ingestion_config or IngestionConfig()
        self.stop_event = stop_event or asyncio.Event()

        self._owns_database = database is None
        self.database = database or Database(
            database_url=str(self.settings.database_url),
            min_size=self.settings.db_pool_min_size,
            max_size=self.settings.db_pool_max_size,
            command_timeout=self.settings.db_command_timeout_seconds,
        )
        self.channels = ChannelRepository(self.database)
        self.categories = CategoryRepository(self.database)
        self.videos = VideoRepository(self.database)

        self.quota = QuotaGovernor(
            daily_limit=self.youtube_config.daily_quota_limit,
            search_cost=self.youtube_config.search_cost,
            video_details_cost=self.youtube_config.video_details_cost,
            warning_threshold=self.youtube_config.quota_warning_threshold,
        )
        self._http_client: HTTPClient | None = None
        self._orchestrator: IngestionOrchestrator | None = None
        self._quota_reset_task: asyncio.Task | None = None

    async def __aenter__(self) -> "IngestionRuntime":
        if self._owns_database:
            await self.database.connect()

        # Every process that owns a governor zeroes it at UTC midnight
        self._quota_reset_task = asyncio.create_task(
            self.quota.run_reset_loop(self.stop_event), name="quota_reset"
        )

        if self.settings.youtube_configured:
            self._http_client = HTTPClient(
                retry_config=RetryConfig(max_retries=self.youtube_config.max_retries),
                timeout=self.youtube_config.request_timeout_seconds,
            )
            await self._http_client.__aenter__()

            client = YouTubeClient(
                self._http_client,
                api_key=self.settings.youtube_api_key,
                config=self.youtube_config,
                quota=self.quota,
                rate_limiter=RateLimiter(self.youtube_config.request_delay_ms),
            )
            self._orchestrator = IngestionOrchestrator(
                client=client,
                channels=self.channels,
                categories=self.categories,
                reconciler=ReconciliationEngine(self.videos),
                config=self.ingestion_config,
                quota=self.quota,
                stop_event=self.stop_event,
            )
        else:
            logger.warning("YOUTUBE_API_KEY is not set; ingestion is disabled")

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._quota_reset_task is not None:
            self._quota_reset_task.cancel()
            await asyncio.gather(self._quota_reset_task, return_exceptions=True)
            self._quota_reset_task = None
        if self._http_client is not None:
            await self._http_client.__aexit__(exc_type, exc_val, exc_tb)
            self._http_client = None
        self._orchestrator = None
        if self._owns_database:
            await self.database.close()

    @property
    def orchestrator(self) -> IngestionOrchestrator:
        if self._orchestrator is None:
            raise RuntimeError("Ingestion is not available: YOUTUBE_API_KEY is not configured")
        return self._orchestrator

    @property
    def ingestion_enabled(self) -> bool:
        return self._orchestrator is not None

    @property
    def quota_reset_running(self) -> bool:
        task = self._quota_reset_task
        return task is not None and not task.done()

    async def init_schema(self) -> None:
        """Create the catalog tables if they do not exist."""
        await create_catalog_tables(self.database)
