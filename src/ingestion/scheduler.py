"""
Scheduler for recurring ingestion runs.

Runs two background tasks until stopped:
- channel ingestion every ``channel_interval_hours`` (default 6)
- category ingestion every ``category_interval_hours`` (default 24)

The quota reset loop belongs to IngestionRuntime, which also serves
processes that only expose the manual triggers.

Fire times are aligned to UTC midnight, so a 6 hour interval fires at
00:00, 06:00, 12:00 and 18:00 UTC and a 24 hour interval at midnight.
Scheduled runs are serialized by a lock so the two cadences never bump
into the orchestrator's single-flight guard; manual triggers still do.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from src.ingestion.config import IngestionConfig
from src.ingestion.orchestrator import MODE_CATEGORIES, MODE_CHANNELS, IngestionOrchestrator

logger = structlog.get_logger(__name__)


def seconds_until_next_run(now: datetime, interval_hours: float) -> float:
    """
    Seconds from ``now`` until the next fire time of an interval.

    Fire times are whole multiples of the interval counted from the Unix
    epoch, which for divisors of 24 hours means UTC-midnight alignment.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    interval = interval_hours * 3600
    elapsed = now.timestamp() % interval
    return interval - elapsed


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IngestionScheduler:
    """
    Drives an IngestionOrchestrator on fixed cadences.

    Usage:
        scheduler = IngestionScheduler(orchestrator, config, stop_event)
        await scheduler.run()  # returns once stop() is called
    """

    def __init__(
        self,
        orchestrator: IngestionOrchestrator,
        config: IngestionConfig | None = None,
        stop_event: asyncio.Event | None = None,
        run_on_start: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        self._orchestrator = orchestrator
        self._config = config or IngestionConfig()
        self._stop_event = stop_event or asyncio.Event()
        self._run_on_start = run_on_start
        self._clock = clock or _utc_now
        self._lock = asyncio.Lock()
        self._tasks: list[asyncio.Task] = []

    def stop(self) -> None:
        """Stop all loops; an in-flight run stops at its next checkpoint."""
        logger.info("Stopping ingestion scheduler")
        self._stop_event.set()
        self._orchestrator.request_stop()

    async def run(self) -> None:
        """Run the cadence loops until stopped."""
        logger.info(
            "Starting ingestion scheduler",
            channel_interval_hours=self._config.channel_interval_hours,
            category_interval_hours=self._config.category_interval_hours,
            run_on_start=self._run_on_start,
        )

        self._tasks = [
            asyncio.create_task(
                self._cadence_loop(MODE_CHANNELS, self._config.channel_interval_hours),
                name="channels",
            ),
            asyncio.create_task(
                self._cadence_loop(MODE_CATEGORIES, self._config.category_interval_hours),
                name="categories",
            ),
        ]

        stop_waiter = asyncio.create_task(self._stop_event.wait(), name="stop")
        try:
            await asyncio.wait(
                [stop_waiter, *self._tasks],
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            self._stop_event.set()
            stop_waiter.cancel()
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(stop_waiter, *self._tasks, return_exceptions=True)
            self._tasks.clear()
            logger.info("Ingestion scheduler stopped")

    async def _cadence_loop(self, mode: str, interval_hours: float) -> None:
        if self._run_on_start:
            await self._run_mode(mode)

        while not self._stop_event.is_set():
            delay = seconds_until_next_run(self._clock(), interval_hours)
            logger.debug("Next scheduled run", mode=mode, in_seconds=round(delay))
            if await self._wait_or_stop(delay):
                break
            await self._run_mode(mode)

    async def _wait_or_stop(self, delay: float) -> bool:
        """Sleep for delay seconds; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run_mode(self, mode: str) -> None:
        async with self._lock:
            if self._stop_event.is_set():
                return
            try:
                if mode == MODE_CHANNELS:
                    await self._orchestrator.run_channels()
                else:
                    await self._orchestrator.run_categories()
            except Exception as e:
                logger.error("Scheduled run failed", mode=mode, error=str(e), exc_info=True)
