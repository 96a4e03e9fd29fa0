"""Tests for the HTTP transport layer."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from src.youtube.http_client import (
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
    api_error_reason,
)

URL = "https://youtube.test/v3/search"


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_default_values(self):
        config = RetryConfig()

        assert config.max_retries == 2
        assert config.max_backoff_seconds == 30.0
        assert config.base_delay == 1.0

    def test_calculate_backoff_exponential_and_capped(self):
        config = RetryConfig(base_delay=1.0, max_backoff_seconds=5.0, jitter_factor=0.0)

        assert config.calculate_backoff(0) == 1.0
        assert config.calculate_backoff(1) == 2.0
        assert config.calculate_backoff(2) == 4.0
        assert config.calculate_backoff(3) == 5.0

    def test_jitter_within_range(self):
        config = RetryConfig(base_delay=1.0, jitter_factor=0.1)

        backoffs = [config.calculate_backoff(0) for _ in range(50)]

        assert all(1.0 <= b < 1.1 for b in backoffs)

    def test_retryable_statuses(self):
        config = RetryConfig()

        assert all(config.is_retryable_status(s) for s in (429, 500, 502, 503, 504))
        assert not any(config.is_retryable_status(s) for s in (200, 400, 403, 404))


class TestHTTPClient:
    """Tests for HTTPClient.get_json()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_json_success(self):
        route = respx.get(URL).mock(
            return_value=httpx.Response(200, json={"items": []})
        )

        async with HTTPClient() as client:
            data = await client.get_json(URL, params={"q": "birds", "maxResults": 5})

        assert data == {"items": []}
        request = route.calls.last.request
        assert request.url.params["q"] == "birds"
        assert request.url.params["maxResults"] == "5"

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        client = HTTPClient()

        with pytest.raises(RuntimeError):
            await client.get_json(URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_retryable_error_raises_immediately(self):
        route = respx.get(URL).mock(
            return_value=httpx.Response(403, json={"error": {"reason": "quotaExceeded"}})
        )

        async with HTTPClient(RetryConfig(max_retries=2)) as client:
            with pytest.raises(HTTPClientError) as exc_info:
                await client.get_json(URL)

        assert exc_info.value.status_code == 403
        assert "quotaExceeded" in exc_info.value.response_body
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_server_errors_then_succeeds(self):
        route = respx.get(URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json={"ok": True}),
            ]
        )

        with patch("src.youtube.http_client.asyncio.sleep", new=AsyncMock()) as sleep:
            async with HTTPClient(RetryConfig(max_retries=2)) as client:
                data = await client.get_json(URL)

        assert data == {"ok": True}
        assert route.call_count == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    @respx.mock
    async def test_before_attempt_runs_for_every_attempt(self):
        respx.get(URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json={"ok": True}),
            ]
        )
        pace = AsyncMock()

        with patch("src.youtube.http_client.asyncio.sleep", new=AsyncMock()):
            async with HTTPClient(RetryConfig(max_retries=2)) as client:
                await client.get_json(URL, before_attempt=pace)

        assert pace.await_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_exhausts_retries(self):
        route = respx.get(URL).mock(return_value=httpx.Response(429, text="slow down"))

        with patch("src.youtube.http_client.asyncio.sleep", new=AsyncMock()):
            async with HTTPClient(RetryConfig(max_retries=2)) as client:
                with pytest.raises(RateLimitError) as exc_info:
                    await client.get_json(URL)

        assert exc_info.value.status_code == 429
        assert route.call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_is_retried_then_wrapped(self):
        route = respx.get(URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

        with patch("src.youtube.http_client.asyncio.sleep", new=AsyncMock()):
            async with HTTPClient(RetryConfig(max_retries=1)) as client:
                with pytest.raises(HTTPClientError) as exc_info:
                    await client.get_json(URL)

        assert "after 2 attempts" in str(exc_info.value)
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_raises_client_error(self):
        respx.get(URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))

        async with HTTPClient() as client:
            with pytest.raises(HTTPClientError, match="Invalid JSON"):
                await client.get_json(URL)


class TestErrorReason:
    """Tests for YouTube error reasons on HTTPClientError."""

    def test_reason_from_youtube_error_body(self):
        body = '{"error": {"code": 403, "errors": [{"reason": "quotaExceeded"}]}}'

        error = HTTPClientError("Request failed", status_code=403, response_body=body)

        assert error.reason == "quotaExceeded"

    def test_reason_missing(self):
        assert api_error_reason(None) is None
        assert api_error_reason("<html>bad gateway</html>") is None
        assert api_error_reason('{"error": {"code": 500}}') is None
        assert api_error_reason('["not", "an", "object"]') is None

    @pytest.mark.parametrize("reason", ["quotaExceeded", "dailyLimitExceeded"])
    def test_quota_exhausted_reasons(self, reason):
        body = f'{{"error": {{"code": 403, "errors": [{{"reason": "{reason}"}}]}}}}'

        error = HTTPClientError("Request failed", status_code=403, response_body=body)

        assert error.quota_exhausted

    def test_other_refusals_are_not_quota(self):
        forbidden = '{"error": {"code": 403, "errors": [{"reason": "forbidden"}]}}'
        bad_request = '{"error": {"code": 400, "errors": [{"reason": "quotaExceeded"}]}}'

        assert not HTTPClientError("x", status_code=403, response_body=forbidden).quota_exhausted
        assert not HTTPClientError("x", status_code=400, response_body=bad_request).quota_exhausted
        assert not HTTPClientError("x").quota_exhausted
