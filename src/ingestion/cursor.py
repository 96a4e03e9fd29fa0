"""
Per-channel ingestion cursor.

A channel moves through three states:

    UNKNOWN ──first page──▶ PARTIALLY_INDEXED ──page without token──▶ FULLY_INDEXED

While the backlog is being walked, every run starts from the newest
upload and pages back as far as quota allows; the cursor id (newest
video seen) is written after the first page. Once fully indexed, runs
only catch up: they page until the stored cursor id shows up, and the
new newest id is held back until then so that a catch-up interrupted
half-way is retried from the old position next time.
"""

from dataclasses import dataclass, field
from enum import Enum

from src.catalog.schemas import Channel
from src.youtube.schemas import ChannelVideosPage


class IndexState(str, Enum):
    """Backlog progress of a channel."""

    UNKNOWN = "unknown"
    PARTIALLY_INDEXED = "partially_indexed"
    FULLY_INDEXED = "fully_indexed"


@dataclass
class IngestionCursor:
    """Cursor state for one channel over one run."""

    last_fetched_video_id: str | None = None
    total_videos: int = 0
    is_fully_indexed: bool = False
    catching_up: bool = False
    _pages_seen: int = field(default=0, init=False, repr=False)
    _total_captured: bool = field(default=False, init=False, repr=False)
    _pending_video_id: str | None = field(default=None, init=False, repr=False)
    _finished: bool = field(default=False, init=False, repr=False)

    @classmethod
    def from_channel(cls, channel: Channel) -> "IngestionCursor":
        return cls(
            last_fetched_video_id=channel.last_fetched_video_id,
            total_videos=channel.total_videos,
            is_fully_indexed=channel.is_fully_indexed,
            catching_up=channel.is_fully_indexed,
        )

    @property
    def state(self) -> IndexState:
        if self.is_fully_indexed:
            return IndexState.FULLY_INDEXED
        if self.last_fetched_video_id:
            return IndexState.PARTIALLY_INDEXED
        return IndexState.UNKNOWN

    @property
    def last_seen_for_fetch(self) -> str | None:
        """Id passed to the client for truncation; only set when catching up."""
        return self.last_fetched_video_id if self.catching_up else None

    @property
    def finished(self) -> bool:
        """True once a page reached the old cursor or had no continuation."""
        return self._finished

    def advance(self, page: ChannelVideosPage) -> None:
        """Fold one fetched page into the cursor."""
        first_page = self._pages_seen == 0
        self._pages_seen += 1
        self._finished = page.reached_last_seen or not page.has_more

        if self.catching_up:
            if first_page:
                self._pending_video_id = page.newest_id
            if self._finished and self._pending_video_id:
                self.last_fetched_video_id = self._pending_video_id
            return

        if not self._total_captured:
            self.total_videos = page.total_results
            self._total_captured = True

        if first_page and page.newest_id:
            self.last_fetched_video_id = page.newest_id

        if self._finished:
            self.is_fully_indexed = True

    def apply(self, channel: Channel) -> Channel:
        """Copy the cursor fields onto the channel for persistence."""
        channel.last_fetched_video_id = self.last_fetched_video_id
        channel.total_videos = self.total_videos
        channel.is_fully_indexed = self.is_fully_indexed
        return channel
