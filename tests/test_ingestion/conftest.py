"""Shared fakes and fixtures for ingestion tests."""

import asyncio
from dataclasses import dataclass, field, replace
from uuid import UUID, uuid4

import pytest

from src.catalog.reconciliation import ReconciliationEngine
from src.catalog.repository import PersistenceError
from src.catalog.schemas import Category, Channel, Video
from src.ingestion.config import CategorySource, IngestionConfig
from src.ingestion.orchestrator import IngestionOrchestrator
from src.youtube.quota import QuotaGovernor
from src.youtube.schemas import ChannelVideosPage, YouTubeChannel, YouTubeVideo


class FakeYouTubeClient:
    """
    Stand-in for YouTubeClient that reserves quota like the real one.

    ``pages`` maps a channel id to its upload pages (newest first); a page
    entry may be an exception to raise instead. ``totals`` optionally maps
    a channel id to the totalResults reported by each page.
    """

    def __init__(self, quota: QuotaGovernor):
        self.quota = quota
        self.channels: dict[str, YouTubeChannel | Exception] = {}
        self.pages: dict[str, list[list[YouTubeVideo] | Exception]] = {}
        self.totals: dict[str, list[int]] = {}
        self.searches: dict[str, list[YouTubeVideo] | Exception] = {}
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None
        self.after_page = None

    async def resolve_channel(self, name: str) -> YouTubeChannel:
        self.calls.append(("resolve", name))
        if self.gate is not None:
            await self.gate.wait()
        self.quota.reserve_calls(search_calls=1, video_details=1)
        result = self.channels[name]
        if isinstance(result, Exception):
            raise result
        return result

    async def get_channel_videos(self, channel_id, page_token=None, last_seen_id=None):
        self.calls.append(("page", channel_id, page_token, last_seen_id))
        self.quota.reserve_calls(search_calls=1, video_details=50)

        pages = self.pages[channel_id]
        index = int(page_token) if page_token else 0
        entry = pages[index]
        if isinstance(entry, Exception):
            raise entry

        ids = [v.youtube_id for v in entry]
        videos = list(entry)
        next_token = str(index + 1) if index + 1 < len(pages) else None
        reached = False
        if last_seen_id and last_seen_id in ids:
            videos = videos[: ids.index(last_seen_id)]
            reached = True
            next_token = None

        totals = self.totals.get(channel_id)
        page = ChannelVideosPage(
            videos=videos,
            next_page_token=next_token,
            total_results=totals[index] if totals else sum(
                len(p) for p in pages if not isinstance(p, Exception)
            ),
            reached_last_seen=reached,
            newest_id=ids[0] if ids else None,
        )
        if self.after_page is not None:
            self.after_page(page)
        return page

    async def search_videos(self, query: str, max_results: int = 50):
        self.calls.append(("search", query, max_results))
        self.quota.reserve_calls(search_calls=1, video_details=max_results)
        result = self.searches[query]
        if isinstance(result, Exception):
            raise result
        return list(result)


class InMemoryChannelRepository:
    """Dict-backed ChannelRepository keeping is_fully_indexed monotonic."""

    def __init__(self):
        self.rows: dict[str, Channel] = {}
        self.saves: list[Channel] = []

    async def find_or_create(self, youtube_channel_id: str, name: str) -> Channel:
        if youtube_channel_id not in self.rows:
            self.rows[youtube_channel_id] = Channel(
                youtube_channel_id=youtube_channel_id, name=name, id=uuid4()
            )
        return replace(self.rows[youtube_channel_id])

    async def save(self, channel: Channel) -> Channel:
        existing = self.rows.get(channel.youtube_channel_id)
        stored = replace(
            channel,
            id=existing.id if existing else uuid4(),
            is_fully_indexed=channel.is_fully_indexed
            or bool(existing and existing.is_fully_indexed),
        )
        self.rows[channel.youtube_channel_id] = stored
        self.saves.append(replace(stored))
        return replace(stored)


class InMemoryCategoryRepository:
    def __init__(self):
        self.rows: dict[str, Category] = {}

    async def find_or_create(self, title: str) -> Category:
        if title not in self.rows:
            self.rows[title] = Category(title=title, id=uuid4())
        return replace(self.rows[title])


class InMemoryVideoRepository:
    """Dict-backed VideoRepository; ``fail_ids`` simulate storage errors."""

    def __init__(self):
        self.rows: dict[str, Video] = {}
        self.fail_ids: set[str] = set()

    async def find_by_youtube_id(self, youtube_id: str) -> Video | None:
        row = self.rows.get(youtube_id)
        return replace(row) if row else None

    async def save(self, video: Video) -> Video:
        if video.youtube_id in self.fail_ids:
            raise PersistenceError(f"save video {video.youtube_id}", RuntimeError("boom"))
        stored = replace(video, id=video.id or uuid4())
        self.rows[video.youtube_id] = stored
        return replace(stored)


@dataclass
class IngestionHarness:
    """An orchestrator wired to in-memory fakes."""

    orchestrator: IngestionOrchestrator
    client: FakeYouTubeClient
    quota: QuotaGovernor
    channels: InMemoryChannelRepository
    categories: InMemoryCategoryRepository
    videos: InMemoryVideoRepository
    config: IngestionConfig
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)

    def add_channel(self, name: str, channel_id: str, pages, totals=None) -> None:
        self.client.channels[name] = YouTubeChannel(
            id=channel_id,
            name=name.title(),
            description=f"{name} https://{name}.example.com",
            thumbnail_url=f"https://yt3.test/{channel_id}.jpg",
            social_links={"website": f"https://{name}.example.com"},
        )
        self.client.pages[channel_id] = pages
        if totals is not None:
            self.client.totals[channel_id] = totals

    def category_id(self, title: str) -> UUID:
        return self.categories.rows[title].id


@pytest.fixture
def make_harness():
    """Factory fixture: make_harness(channels=[...], categories=[...], daily_limit=5000)."""

    def _make(
        channels: list[str] | None = None,
        categories: list[CategorySource] | None = None,
        daily_limit: int = 5000,
        quota: QuotaGovernor | None = None,
    ) -> IngestionHarness:
        quota = quota or QuotaGovernor(daily_limit=daily_limit)
        client = FakeYouTubeClient(quota)
        channel_repo = InMemoryChannelRepository()
        category_repo = InMemoryCategoryRepository()
        video_repo = InMemoryVideoRepository()
        config = IngestionConfig(
            channels=channels or [],
            categories=categories or [],
            category_max_results=10,
        )
        stop_event = asyncio.Event()
        orchestrator = IngestionOrchestrator(
            client=client,
            channels=channel_repo,
            categories=category_repo,
            reconciler=ReconciliationEngine(video_repo),
            config=config,
            quota=quota,
            stop_event=stop_event,
        )
        return IngestionHarness(
            orchestrator=orchestrator,
            client=client,
            quota=quota,
            channels=channel_repo,
            categories=category_repo,
            videos=video_repo,
            config=config,
            stop_event=stop_event,
        )

    return _make
