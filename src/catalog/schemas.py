"""Data models for the video catalog."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass
class Channel:
    """A YouTube channel tracked for ingestion.

    The cursor fields (``last_fetched_video_id``, ``total_videos``,
    ``is_fully_indexed``) are persisted after every page of a run.
    ``is_fully_indexed`` only goes back to False through an explicit
    re-index.
    """

    youtube_channel_id: str
    name: str
    description: str = ""
    thumbnail_url: str = ""
    social_links: dict[str, str | None] = field(default_factory=dict)
    is_active: bool = True
    last_fetched_at: datetime | None = None
    last_fetched_video_id: str | None = None
    total_videos: int = 0
    is_fully_indexed: bool = False
    id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Category:
    """A named bucket videos are filed under (unique by title)."""

    title: str
    id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Video:
    """A stored video, keyed naturally by ``youtube_id``."""

    youtube_id: str
    title: str
    description: str
    upload_date: datetime
    length: int
    category_id: UUID
    channel_id: UUID | None = None
    thumbnail_url: str = ""
    id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
