"""
Daily quota governor for the YouTube Data API.

The API charges abstract quota units per call and enforces a daily
budget that resets at midnight UTC. The governor tracks consumption
in-process with pessimistic reservations: callers reserve the
worst-case cost of a call sequence up front and the units are never
refunded, even if fewer videos come back than were budgeted.

Usage:
    governor = QuotaGovernor(daily_limit=5000)
    governor.reserve_calls(search_calls=1, video_details=50)  # 150 units
    if governor.near_exhaustion():
        ...

    # Background task that zeroes the counter at each UTC midnight
    task = asyncio.create_task(governor.run_reset_loop(stop_event))
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, time, timedelta, timezone

from src.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[None]]


class QuotaExceededError(Exception):
    """Raised when a reservation would push usage above the daily limit."""

    def __init__(self, required: int, remaining: int, message: str | None = None):
        super().__init__(
            message
            or f"Daily YouTube API quota would be exceeded. "
            f"Required: {required}, Remaining: {remaining}"
        )
        self.required = required
        self.remaining = remaining


class UpstreamQuotaExceededError(QuotaExceededError):
    """YouTube refused a call because the project's daily quota is spent.

    Happens when the in-process counter disagrees with the API, e.g. after
    a restart or when another process shares the same API key.
    """

    def __init__(self, reason: str):
        super().__init__(
            required=0,
            remaining=0,
            message=f"YouTube API refused the request: {reason}",
        )
        self.reason = reason


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_utc_midnight(now: datetime) -> datetime:
    """
    Return the first UTC midnight strictly after ``now``.

    Naive datetimes are treated as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=timezone.utc)


class QuotaGovernor:
    """
    Tracks quota units consumed in the current UTC day.

    Args:
        daily_limit: Units available per day.
        search_cost: Units charged per search.list call.
        video_details_cost: Units budgeted per video detail lookup.
        warning_threshold: Fraction of the limit at which near_exhaustion() trips.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        daily_limit: int,
        search_cost: int = 100,
        video_details_cost: int = 1,
        warning_threshold: float = 0.9,
        clock: Clock | None = None,
    ) -> None:
        self._daily_limit = daily_limit
        self._search_cost = search_cost
        self._video_details_cost = video_details_cost
        self._warning_threshold = warning_threshold
        self._clock = clock or _utc_now
        self._used = 0

    @property
    def used(self) -> int:
        return self._used

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    @property
    def remaining(self) -> int:
        return self._daily_limit - self._used

    def cost_of(self, search_calls: int, video_details: int) -> int:
        """Units required for a number of searches plus video detail lookups."""
        return (
            search_calls * self._search_cost
            + video_details * self._video_details_cost
        )

    def reserve(self, units: int) -> None:
        """
        Reserve quota units before making API calls.

        Raises:
            QuotaExceededError: If the reservation would exceed the daily
                limit. Usage is left unchanged in that case.
        """
        if units > self.remaining:
            raise QuotaExceededError(required=units, remaining=self.remaining)

        self._used += units
        get_metrics().set_quota_usage(self._used, self._daily_limit)
        logger.info("YouTube API quota used: %d/%d", self._used, self._daily_limit)

    def reserve_calls(self, search_calls: int, video_details: int) -> int:
        """Reserve the cost of a call sequence and return the units reserved."""
        units = self.cost_of(search_calls, video_details)
        self.reserve(units)
        return units

    def exhaust(self) -> None:
        """Mark the whole daily budget as used until the next reset."""
        self._used = self._daily_limit
        get_metrics().set_quota_usage(self._used, self._daily_limit)
        logger.warning("YouTube API quota marked exhausted until next reset")

    def near_exhaustion(self) -> bool:
        """True once usage reaches the warning fraction of the daily limit."""
        return self._used >= self._daily_limit * self._warning_threshold

    def usage(self) -> tuple[int, int]:
        """Return (used, total) quota units."""
        return self._used, self._daily_limit

    def reset(self) -> None:
        """Zero the usage counter for a new quota window."""
        previous = self._used
        self._used = 0
        get_metrics().set_quota_usage(0, self._daily_limit)
        logger.info("YouTube API quota reset (previous usage: %d)", previous)

    def seconds_until_reset(self) -> float:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return max(0.0, (next_utc_midnight(now) - now).total_seconds())

    async def run_reset_loop(
        self,
        stop_event: asyncio.Event | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        Reset usage at every UTC midnight until stop_event is set.

        Each iteration recomputes the delay from the clock, so the loop
        reschedules itself indefinitely and does not drift.
        """
        while stop_event is None or not stop_event.is_set():
            delay = self.seconds_until_reset()
            logger.debug("Next quota reset in %.0fs", delay)
            await sleep(delay)
            if stop_event is not None and stop_event.is_set():
                break
            self.reset()
