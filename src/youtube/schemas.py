"""Normalized shapes returned by the YouTube client."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class YouTubeVideo:
    """A video with the metadata the catalog stores."""

    youtube_id: str
    title: str
    description: str
    upload_date: datetime
    length: int  # seconds
    thumbnail_url: str = ""


@dataclass
class YouTubeChannel:
    """A channel resolved from a human-readable name."""

    id: str
    name: str
    description: str = ""
    thumbnail_url: str = ""
    social_links: dict[str, str | None] = field(default_factory=dict)


@dataclass
class ChannelVideosPage:
    """
    One page of a channel's uploads, newest first.

    ``reached_last_seen`` is set when the page contained the caller's
    cursor; the videos are then only those newer than it and
    ``next_page_token`` is always None.
    """

    videos: list[YouTubeVideo] = field(default_factory=list)
    next_page_token: str | None = None
    total_results: int = 0
    reached_last_seen: bool = False
    newest_id: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_page_token is not None
