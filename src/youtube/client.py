"""
YouTube Data API v3 client.

Wraps the three call sequences the ingestion pipeline needs:
- resolve_channel: human-readable channel name -> channel metadata
- search_videos: keyword search across YouTube, paged until max_results
- get_channel_videos: one page of a channel's uploads, newest first

Every sequence reserves its worst-case quota cost with the QuotaGovernor
before the first request, and every request (retries included) waits on
the RateLimiter. A 403 quotaExceeded from the API marks the governor
exhausted and surfaces as a QuotaExceededError.Listing calls return normalized YouTubeVideo records with videos shorter
than the configured minimum length removed.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from src.observability.metrics import get_metrics
from src.youtube.config import YouTubeConfig
from src.youtube.http_client import HTTPClient, HTTPClientError
from src.youtube.parsing import extract_social_links, parse_duration
from src.youtube.quota import QuotaExceededError, QuotaGovernor, UpstreamQuotaExceededError
from src.youtube.rate_limiter import RateLimiter
from src.youtube.schemas import ChannelVideosPage, YouTubeChannel, YouTubeVideo

logger = logging.getLogger(__name__)

FALLBACK_THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/hqdefault.jpg"


class ChannelNotFoundError(Exception):
    """Raised when a channel name does not resolve to any channel."""

    def __init__(self, name: str):
        super().__init__(f"YouTube channel not found: {name}")
        self.name = name


def _parse_published_at(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _best_thumbnail(thumbnails: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        url = (thumbnails.get(key) or {}).get("url")
        if url:
            return url
    return None


class YouTubeClient:
    """
    Quota- and rate-aware client for the YouTube Data API.

    The caller owns the HTTPClient lifecycle:

        async with HTTPClient(RetryConfig(max_retries=2)) as http:
            client = YouTubeClient(http, api_key, config, quota, limiter)
            channel = await client.resolve_channel("fourpawstv")
            page = await client.get_channel_videos(channel.id)
    """

    def __init__(
        self,
        http_client: HTTPClient,
        api_key: str,
        config: YouTubeConfig | None = None,
        quota: QuotaGovernor | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._config = config or YouTubeConfig()
        self._quota = quota or QuotaGovernor(
            daily_limit=self._config.daily_quota_limit,
            search_cost=self._config.search_cost,
            video_details_cost=self._config.video_details_cost,
            warning_threshold=self._config.quota_warning_threshold,
        )
        self._rate_limiter = rate_limiter or RateLimiter(self._config.request_delay_ms)

    @property
    def quota(self) -> QuotaGovernor:
        return self._quota

    @property
    def config(self) -> YouTubeConfig:
        return self._config

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        get_metrics().record_api_call(endpoint)
        url = f"{self._config.api_url.rstrip('/')}/{endpoint}"
        try:
            return await self._http.get_json(
                url,
                params={**params, "key": self._api_key},
                before_attempt=self._rate_limiter.wait,
            )
        except HTTPClientError as e:
            if not e.quota_exhausted:
                raise
            # The API is the authority; stop local reservations until reset
            self._quota.exhaust()
            raise UpstreamQuotaExceededError(e.reason) from e

    async def resolve_channel(self, name: str) -> YouTubeChannel:
        """
        Resolve a channel name to its id and metadata.

        Raises:
            ChannelNotFoundError: If the search returns no channel
            QuotaExceededError: If the lookup does not fit in today's budget
            HTTPClientError: On transport failure
        """
        self._quota.reserve_calls(search_calls=1, video_details=1)

        search = await self._get(
            "search",
            {"part": "snippet", "q": name, "type": "channel", "maxResults": 1},
        )
        items = search.get("items") or []
        channel_id = (items[0].get("id") or {}).get("channelId") if items else None
        if not channel_id:
            raise ChannelNotFoundError(name)

        details = await self._get(
            "channels",
            {"part": "snippet,brandingSettings", "id": channel_id},
        )
        channels = details.get("items") or []
        if not channels:
            raise ChannelNotFoundError(name)

        snippet = channels[0].get("snippet") or {}
        description = snippet.get("description") or ""
        thumbnail = _best_thumbnail(snippet.get("thumbnails") or {}, "high", "medium", "default")

        return YouTubeChannel(
            id=channel_id,
            name=snippet.get("title") or name,
            description=description,
            thumbnail_url=thumbnail or "",
            social_links=extract_social_links(description),
        )

    async def search_videos(self, query: str, max_results: int = 50) -> list[YouTubeVideo]:
        """
        Search embeddable, syndicated videos matching a query.

        Pages are requested until ``max_results`` videos (after the length
        filter) have been collected, the API stops returning a page token,
        or the reported total is already covered.
        """
        videos: list[YouTubeVideo] = []
        page_token: str | None = None

        while len(videos) < max_results:
            page_size = min(max_results - len(videos), self._config.page_size)
            try:
                self._quota.reserve_calls(search_calls=1, video_details=page_size)
            except QuotaExceededError:
                if videos:
                    logger.warning(
                        "Quota exhausted while paging search %r; dropping %d fetched videos",
                        query,
                        len(videos),
                    )
                raise

            params: dict[str, Any] = {
                "part": "id",
                "q": query,
                "type": "video",
                "videoEmbeddable": "true",
                "videoSyndicated": "true",
                "maxResults": page_size,
            }
            if page_token:
                params["pageToken"] = page_token

            search = await self._get("search", params)
            video_ids = self._video_ids(search)
            videos.extend(await self._fetch_video_details(video_ids))

            page_token = search.get("nextPageToken")
            total_results = (search.get("pageInfo") or {}).get("totalResults", 0)
            if not page_token or total_results <= len(videos):
                break

        logger.info("Search %r returned %d videos", query, min(len(videos), max_results))
        return videos[:max_results]

    async def get_channel_videos(
        self,
        channel_id: str,
        page_token: str | None = None,
        last_seen_id: str | None = None,
    ) -> ChannelVideosPage:
        """
        Fetch one page of a channel's uploads, newest first.

        When ``last_seen_id`` appears in the page, only the videos strictly
        newer than it are returned and the continuation token is dropped.
        """
        page_size = self._config.page_size
        self._quota.reserve_calls(search_calls=1, video_details=page_size)

        params: dict[str, Any] = {
            "part": "id",
            "channelId": channel_id,
            "type": "video",
            "order": "date",
            "maxResults": page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        search = await self._get("search", params)
        video_ids = self._video_ids(search)
        next_page_token = search.get("nextPageToken")
        total_results = (search.get("pageInfo") or {}).get("totalResults", 0)
        newest_id = video_ids[0] if video_ids else None

        reached_last_seen = False
        if last_seen_id and last_seen_id in video_ids:
            video_ids = video_ids[: video_ids.index(last_seen_id)]
            reached_last_seen = True
            next_page_token = None

        videos = await self._fetch_video_details(video_ids)

        return ChannelVideosPage(
            videos=videos,
            next_page_token=next_page_token,
            total_results=total_results,
            reached_last_seen=reached_last_seen,
            newest_id=newest_id,
        )

    @staticmethod
    def _video_ids(search: dict[str, Any]) -> list[str]:
        ids = []
        for item in search.get("items") or []:
            video_id = (item.get("id") or {}).get("videoId")
            if video_id:
                ids.append(video_id)
        return ids

    async def _fetch_video_details(self, video_ids: list[str]) -> list[YouTubeVideo]:
        """Look up snippet and duration for ids, keeping their order."""
        if not video_ids:
            return []

        details = await self._get(
            "videos",
            {"part": "snippet,contentDetails", "id": ",".join(video_ids)},
        )
        by_id = {item.get("id"): item for item in details.get("items") or []}

        videos = []
        for video_id in video_ids:
            item = by_id.get(video_id)
            if item is None:
                continue
            video = self._to_video(video_id, item)
            if video is None:
                continue
            if video.length < self._config.min_video_length_seconds:
                continue
            videos.append(video)
        return videos

    def _to_video(self, video_id: str, item: dict[str, Any]) -> YouTubeVideo | None:
        snippet = item.get("snippet") or {}
        upload_date = _parse_published_at(snippet.get("publishedAt"))
        if upload_date is None:
            logger.warning("Skipping video %s with unreadable publishedAt", video_id)
            return None

        thumbnail = _best_thumbnail(snippet.get("thumbnails") or {}, "maxres", "high")
        return YouTubeVideo(
            youtube_id=video_id,
            title=snippet.get("title") or "",
            description=snippet.get("description") or "",
            upload_date=upload_date,
            length=parse_duration((item.get("contentDetails") or {}).get("duration")),
            thumbnail_url=thumbnail or FALLBACK_THUMBNAIL_URL.format(video_id=video_id),
        )
