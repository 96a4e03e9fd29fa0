"""
HTTP transport for the YouTube Data API.

Every request carries an explicit timeout and is retried a bounded
number of times on 429, transient 5xx and connection-level failures.
Quota is reserved by the caller before a call sequence and a retry does
not reserve again, so retries are kept few.

YouTube reports errors as ``{"error": {"code": 403, "errors": [{"reason":
"quotaExceeded", ...}]}}``; the first reason is surfaced on HTTPClientError
so log lines say *why* a call was refused. A 403 whose reason is in
QUOTA_EXHAUSTED_REASONS means the project's daily quota is spent upstream.
"""

import asyncio
import json
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)
QUOTA_EXHAUSTED_REASONS = frozenset({"quotaExceeded", "dailyLimitExceeded"})

BeforeAttempt = Callable[[], Awaitable[None]]


@dataclass
class RetryConfig:
    """
    Exponential backoff for transient failures.

    Delay for attempt n (0-indexed) is
    ``min(max_backoff_seconds, base_delay * 2**n)`` plus up to
    ``jitter_factor`` of that as random jitter.
    """

    max_retries: int = 2
    max_backoff_seconds: float = 30.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay * (1 + self.jitter_factor * random.random())

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUSES


def api_error_reason(body: str | None) -> str | None:
    """First ``reason`` of a YouTube error payload, or None if absent."""
    if not body:
        return None
    try:
        error = json.loads(body).get("error") or {}
    except (ValueError, AttributeError):
        return None
    if not isinstance(error, dict):
        return None
    for item in error.get("errors") or []:
        if isinstance(item, dict) and item.get("reason"):
            return item["reason"]
    return None


class HTTPClientError(Exception):
    """Transport failure talking to the YouTube API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def reason(self) -> str | None:
        """YouTube error reason (e.g. ``quotaExceeded``), when the body has one."""
        return api_error_reason(self.response_body)

    @property
    def quota_exhausted(self) -> bool:
        """True when YouTube refused the call because the daily quota is spent."""
        return self.status_code == 403 and self.reason in QUOTA_EXHAUSTED_REASONS


class RateLimitError(HTTPClientError):
    """429 responses persisted through every retry."""


class HTTPClient:
    """
    Async GET-and-decode client.

    Example:
        async with HTTPClient(RetryConfig(max_retries=2), timeout=30.0) as http:
            data = await http.get_json(
                "https://www.googleapis.com/youtube/v3/search",
                params={"q": "birds for cats", "key": api_key},
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        before_attempt: BeforeAttempt | None = None,
    ) -> dict[str, Any]:
        """
        GET ``url`` and decode the JSON body.

        ``before_attempt`` is awaited before every attempt, retries included,
        so a caller's pacing also covers retried requests.

        Raises:
            RateLimitError: Still rate limited after the last retry
            HTTPClientError: Any other non-2xx status, an undecodable body,
                or a connection failure after the last retry
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        response = await self._get_with_retry(url, params, before_attempt)
        try:
            return response.json()
        except ValueError as e:
            raise HTTPClientError(
                f"Invalid JSON from {url}: {e}",
                status_code=response.status_code,
                response_body=response.text[:500],
            ) from e

    async def _get_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None,
        before_attempt: BeforeAttempt | None = None,
    ) -> httpx.Response:
        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            if before_attempt is not None:
                await before_attempt()
            try:
                response = await self._client.get(url, params=params)
            except RETRYABLE_ERRORS as e:
                if last_attempt:
                    raise HTTPClientError(
                        f"Request failed after {attempts} attempts: {e}"
                    ) from e
                await self._backoff(attempt, url, type(e).__name__)
                continue

            status = response.status_code
            if status < 400:
                return response

            if not self.retry_config.is_retryable_status(status):
                error = HTTPClientError(
                    f"Request failed with status {status}",
                    status_code=status,
                    response_body=response.text,
                )
                logger.warning("YouTube API refused %s: %s (%s)", url, status, error.reason)
                raise error

            if last_attempt:
                error_cls = RateLimitError if status == 429 else HTTPClientError
                raise error_cls(
                    f"Request failed with status {status} after {attempts} attempts",
                    status_code=status,
                    response_body=response.text,
                )
            await self._backoff(attempt, url, f"status {status}")

        raise HTTPClientError(f"Request failed after {attempts} attempts")

    async def _backoff(self, attempt: int, url: str, cause: str) -> None:
        delay = self.retry_config.calculate_backoff(attempt)
        logger.warning(
            "Retrying %s after %s (attempt %d/%d, backing off %.2fs)",
            url,
            cause,
            attempt + 1,
            self.retry_config.max_retries + 1,
            delay,
        )
        await asyncio.sleep(delay)
