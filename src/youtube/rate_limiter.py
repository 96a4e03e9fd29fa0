"""Minimum-spacing rate limiter for outbound API requests."""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiter:
    """
    Enforces a minimum interval between consecutive requests.

    ``wait()`` suspends until at least ``min_interval_ms`` have passed
    since the previous ``wait()`` returned. Concurrent callers are
    serialized by a lock, so each one gets its own slot.
    """

    min_interval_ms: int
    _last_request: float | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def wait(self) -> None:
        """Wait until the next request slot is available."""
        async with self._lock:
            if self._last_request is not None:
                elapsed = time.monotonic() - self._last_request
                remaining = self.min_interval_ms / 1000.0 - elapsed
                if remaining > 0:
                    logger.debug(f"Rate limited, waiting {remaining:.3f}s")
                    await asyncio.sleep(remaining)
            self._last_request = time.monotonic()

    @property
    def last_request(self) -> float | None:
        """Monotonic timestamp of the last granted slot."""
        return self._last_request
