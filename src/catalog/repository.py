"""
Database repositories for the channels, categories and videos tables.

Each repository owns its DDL (``create_table`` is idempotent) and maps
asyncpg records to the dataclasses in ``src.catalog.schemas``. Writes
are single statements, so each call is atomic on its own; the
find-or-create and save operations use ``INSERT ... ON CONFLICT`` so
concurrent first sightings converge on one row.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from src.catalog.schemas import Category, Channel, Video
from src.storage.database import Database

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A catalog read or write failed in the database layer."""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


@asynccontextmanager
async def _persistence(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise PersistenceError(operation, e) from e


# --- channels -----------------------------------------------------------------

_CREATE_CHANNELS_SQL = """
CREATE TABLE IF NOT EXISTS channels (
    id                    UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    youtube_channel_id    TEXT NOT NULL UNIQUE,
    name                  TEXT NOT NULL,
    description           TEXT NOT NULL DEFAULT '',
    thumbnail_url         TEXT NOT NULL DEFAULT '',
    social_links          JSONB NOT NULL DEFAULT '{}',
    is_active             BOOLEAN NOT NULL DEFAULT TRUE,
    last_fetched_at       TIMESTAMPTZ,
    last_fetched_video_id TEXT,
    total_videos          INTEGER NOT NULL DEFAULT 0,
    is_fully_indexed      BOOLEAN NOT NULL DEFAULT FALSE,
    created_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at            TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_FIND_OR_CREATE_CHANNEL_SQL = """
INSERT INTO channels (youtube_channel_id, name)
VALUES ($1, $2)
ON CONFLICT (youtube_channel_id) DO UPDATE SET
    youtube_channel_id = channels.youtube_channel_id
RETURNING *
"""

# is_fully_indexed is OR-ed so a normal save can never clear it
_SAVE_CHANNEL_SQL = """
INSERT INTO channels (
    youtube_channel_id, name, description, thumbnail_url, social_links,
    is_active, last_fetched_at, last_fetched_video_id, total_videos,
    is_fully_indexed
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
ON CONFLICT (youtube_channel_id) DO UPDATE SET
    name = EXCLUDED.name,
    description = EXCLUDED.description,
    thumbnail_url = EXCLUDED.thumbnail_url,
    social_links = EXCLUDED.social_links,
    is_active = EXCLUDED.is_active,
    last_fetched_at = EXCLUDED.last_fetched_at,
    last_fetched_video_id = EXCLUDED.last_fetched_video_id,
    total_videos = EXCLUDED.total_videos,
    is_fully_indexed = channels.is_fully_indexed OR EXCLUDED.is_fully_indexed,
    updated_at = NOW()
RETURNING *
"""

_RESET_INDEX_SQL = """
UPDATE channels SET
    is_fully_indexed = FALSE,
    last_fetched_video_id = NULL,
    total_videos = 0,
    updated_at = NOW()
WHERE youtube_channel_id = $1
"""


def _record_to_channel(record) -> Channel:
    """Convert an asyncpg Record to a Channel dataclass."""
    return Channel(
        id=record["id"],
        youtube_channel_id=record["youtube_channel_id"],
        name=record["name"],
        description=record["description"],
        thumbnail_url=record["thumbnail_url"],
        social_links=dict(record["social_links"]) if record["social_links"] else {},
        is_active=record["is_active"],
        last_fetched_at=record["last_fetched_at"],
        last_fetched_video_id=record["last_fetched_video_id"],
        total_videos=record["total_videos"],
        is_fully_indexed=record["is_fully_indexed"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class ChannelRepository:
    """Persistence for channels and their ingestion cursors."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the channels table (idempotent)."""
        await self._db.execute(_CREATE_CHANNELS_SQL)
        logger.info("Channels table ensured")

    async def find_or_create(self, youtube_channel_id: str, name: str) -> Channel:
        """Return the channel row, inserting it on first sighting."""
        async with _persistence(f"find_or_create channel {youtube_channel_id}"):
            row = await self._db.fetchrow(
                _FIND_OR_CREATE_CHANNEL_SQL, youtube_channel_id, name
            )
        return _record_to_channel(row)

    async def get_by_youtube_id(self, youtube_channel_id: str) -> Channel | None:
        async with _persistence(f"get channel {youtube_channel_id}"):
            row = await self._db.fetchrow(
                "SELECT * FROM channels WHERE youtube_channel_id = $1",
                youtube_channel_id,
            )
        return _record_to_channel(row) if row else None

    async def save(self, channel: Channel) -> Channel:
        """Persist every mutable field, cursor included."""
        async with _persistence(f"save channel {channel.youtube_channel_id}"):
            row = await self._db.fetchrow(
                _SAVE_CHANNEL_SQL,
                channel.youtube_channel_id,
                channel.name,
                channel.description,
                channel.thumbnail_url,
                channel.social_links,
                channel.is_active,
                channel.last_fetched_at,
                channel.last_fetched_video_id,
                channel.total_videos,
                channel.is_fully_indexed,
            )
        return _record_to_channel(row)

    async def reset_index(self, youtube_channel_id: str) -> bool:
        """
        Clear a channel's cursor so the next run walks its backlog again.

        Returns True if a row was updated.
        """
        async with _persistence(f"reset index {youtube_channel_id}"):
            result = await self._db.execute(_RESET_INDEX_SQL, youtube_channel_id)
        updated = int(result.split()[-1]) > 0
        if updated:
            logger.info("Reset ingestion cursor for channel %s", youtube_channel_id)
        return updated

    async def list_channels(self) -> list[Channel]:
        async with _persistence("list channels"):
            rows = await self._db.fetch("SELECT * FROM channels ORDER BY name")
        return [_record_to_channel(r) for r in rows]


# --- categories ---------------------------------------------------------------

_CREATE_CATEGORIES_SQL = """
CREATE TABLE IF NOT EXISTS categories (
    id         UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    title      TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_FIND_OR_CREATE_CATEGORY_SQL = """
INSERT INTO categories (title)
VALUES ($1)
ON CONFLICT (title) DO UPDATE SET title = categories.title
RETURNING *
"""


def _record_to_category(record) -> Category:
    return Category(
        id=record["id"],
        title=record["title"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class CategoryRepository:
    """Persistence for categories."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the categories table (idempotent)."""
        await self._db.execute(_CREATE_CATEGORIES_SQL)
        logger.info("Categories table ensured")

    async def find_or_create(self, title: str) -> Category:
        async with _persistence(f"find_or_create category {title!r}"):
            row = await self._db.fetchrow(_FIND_OR_CREATE_CATEGORY_SQL, title)
        return _record_to_category(row)


# --- videos -------------------------------------------------------------------

_CREATE_VIDEOS_SQL = """
CREATE TABLE IF NOT EXISTS videos (
    id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    youtube_id    TEXT NOT NULL UNIQUE,
    title         TEXT NOT NULL,
    description   TEXT NOT NULL DEFAULT '',
    upload_date   TIMESTAMPTZ NOT NULL,
    length        INTEGER NOT NULL,
    thumbnail_url TEXT NOT NULL DEFAULT '',
    category_id   UUID NOT NULL REFERENCES categories(id),
    channel_id    UUID REFERENCES channels(id),
    created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_videos_category ON videos(category_id);
CREATE INDEX IF NOT EXISTS idx_videos_channel ON videos(channel_id);
CREATE INDEX IF NOT EXISTS idx_videos_upload_date ON videos(upload_date DESC);
"""

_SAVE_VIDEO_SQL = """
INSERT INTO videos (
    youtube_id, title, description, upload_date, length,
    thumbnail_url, category_id, channel_id
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
ON CONFLICT (youtube_id) DO UPDATE SET
    title = EXCLUDED.title,
    description = EXCLUDED.description,
    upload_date = EXCLUDED.upload_date,
    length = EXCLUDED.length,
    thumbnail_url = EXCLUDED.thumbnail_url,
    category_id = EXCLUDED.category_id,
    channel_id = EXCLUDED.channel_id,
    updated_at = NOW()
RETURNING *
"""


def _record_to_video(record) -> Video:
    """Convert an asyncpg Record to a Video dataclass."""
    return Video(
        id=record["id"],
        youtube_id=record["youtube_id"],
        title=record["title"],
        description=record["description"],
        upload_date=record["upload_date"],
        length=record["length"],
        thumbnail_url=record["thumbnail_url"],
        category_id=record["category_id"],
        channel_id=record["channel_id"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class VideoRepository:
    """Persistence for videos, keyed by youtube_id."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the videos table and indexes (idempotent).

        References channels and categories, so those tables must exist first.
        """
        await self._db.execute(_CREATE_VIDEOS_SQL)
        logger.info("Videos table ensured")

    async def find_by_youtube_id(self, youtube_id: str) -> Video | None:
        async with _persistence(f"find video {youtube_id}"):
            row = await self._db.fetchrow(
                "SELECT * FROM videos WHERE youtube_id = $1", youtube_id
            )
        return _record_to_video(row) if row else None

    async def save(self, video: Video) -> Video:
        """Insert the video or overwrite every mutable field of the existing row."""
        async with _persistence(f"save video {video.youtube_id}"):
            row = await self._db.fetchrow(
                _SAVE_VIDEO_SQL,
                video.youtube_id,
                video.title,
                video.description,
                video.upload_date,
                video.length,
                video.thumbnail_url,
                video.category_id,
                video.channel_id,
            )
        return _record_to_video(row)

    async def count(self, channel_id: UUID | None = None) -> int:
        """Count stored videos, optionally for one channel."""
        async with _persistence("count videos"):
            if channel_id is None:
                total = await self._db.fetchval("SELECT COUNT(*) FROM videos")
            else:
                total = await self._db.fetchval(
                    "SELECT COUNT(*) FROM videos WHERE channel_id = $1", channel_id
                )
        return total or 0


async def create_catalog_tables(database: Database) -> None:
    """Create all catalog tables in dependency order."""
    await ChannelRepository(database).create_table()
    await CategoryRepository(database).create_table()
    await VideoRepository(database).create_table()
