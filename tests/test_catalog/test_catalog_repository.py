"""Tests for the catalog repositories."""

from datetime import datetime, timezone

import asyncpg
import pytest

from src.catalog.repository import (
    CategoryRepository,
    ChannelRepository,
    PersistenceError,
    VideoRepository,
    create_catalog_tables,
)
from src.catalog.schemas import Channel, Video


class TestCreateTables:
    """Tests for idempotent DDL."""

    @pytest.mark.asyncio
    async def test_channel_table(self, mock_database):
        await ChannelRepository(mock_database).create_table()

        sql = mock_database.execute.call_args[0][0]
        assert "CREATE TABLE IF NOT EXISTS channels" in sql
        assert "youtube_channel_id    TEXT NOT NULL UNIQUE" in sql

    @pytest.mark.asyncio
    async def test_all_tables_in_dependency_order(self, mock_database):
        await create_catalog_tables(mock_database)

        statements = [c[0][0] for c in mock_database.execute.call_args_list]
        assert len(statements) == 3
        assert "channels" in statements[0]
        assert "categories" in statements[1]
        assert "CREATE TABLE IF NOT EXISTS videos" in statements[2]
        assert "REFERENCES categories(id)" in statements[2]


class TestChannelRepository:
    """Tests for ChannelRepository."""

    @pytest.mark.asyncio
    async def test_find_or_create(self, mock_database, channel_row):
        mock_database.fetchrow.return_value = channel_row
        repo = ChannelRepository(mock_database)

        channel = await repo.find_or_create("UC123", "Four Paws TV")

        sql, *args = mock_database.fetchrow.call_args[0]
        assert "ON CONFLICT (youtube_channel_id)" in sql
        assert "RETURNING *" in sql
        assert args == ["UC123", "Four Paws TV"]
        assert channel.id == channel_row["id"]
        assert channel.last_fetched_video_id == "vid_newest"
        assert channel.social_links["instagram"] == "https://instagram.com/fourpaws"

    @pytest.mark.asyncio
    async def test_save_passes_cursor_fields(self, mock_database, channel_row):
        mock_database.fetchrow.return_value = {**channel_row, "is_fully_indexed": True}
        repo = ChannelRepository(mock_database)
        channel = Channel(
            youtube_channel_id="UC123",
            name="Four Paws TV",
            social_links={"twitter": None},
            last_fetched_video_id="vid_9",
            total_videos=321,
            is_fully_indexed=True,
        )

        saved = await repo.save(channel)

        sql, *args = mock_database.fetchrow.call_args[0]
        assert "channels.is_fully_indexed OR EXCLUDED.is_fully_indexed" in sql
        assert args[0] == "UC123"
        assert args[4] == {"twitter": None}
        assert args[7:] == ["vid_9", 321, True]
        assert saved.is_fully_indexed is True

    @pytest.mark.asyncio
    async def test_get_by_youtube_id_missing(self, mock_database):
        repo = ChannelRepository(mock_database)

        assert await repo.get_by_youtube_id("UCnope") is None

    @pytest.mark.asyncio
    async def test_reset_index(self, mock_database):
        repo = ChannelRepository(mock_database)

        assert await repo.reset_index("UC123") is True

        sql, arg = mock_database.execute.call_args[0]
        assert "is_fully_indexed = FALSE" in sql
        assert "last_fetched_video_id = NULL" in sql
        assert arg == "UC123"

    @pytest.mark.asyncio
    async def test_reset_index_unknown_channel(self, mock_database):
        mock_database.execute.return_value = "UPDATE 0"

        assert await ChannelRepository(mock_database).reset_index("UCnope") is False

    @pytest.mark.asyncio
    async def test_list_channels(self, mock_database, channel_row):
        mock_database.fetch.return_value = [channel_row]

        channels = await ChannelRepository(mock_database).list_channels()

        assert [c.name for c in channels] == ["Four Paws TV"]

    @pytest.mark.asyncio
    async def test_postgres_error_becomes_persistence_error(self, mock_database):
        mock_database.fetchrow.side_effect = asyncpg.exceptions.UniqueViolationError(
            "duplicate key"
        )

        with pytest.raises(PersistenceError) as exc_info:
            await ChannelRepository(mock_database).find_or_create("UC123", "x")

        assert isinstance(exc_info.value.__cause__, asyncpg.PostgresError)
        assert "UC123" in exc_info.value.operation


class TestCategoryRepository:
    """Tests for CategoryRepository."""

    @pytest.mark.asyncio
    async def test_find_or_create(self, mock_database, category_row):
        mock_database.fetchrow.return_value = category_row

        category = await CategoryRepository(mock_database).find_or_create("Birds")

        sql, title = mock_database.fetchrow.call_args[0]
        assert "ON CONFLICT (title)" in sql
        assert title == "Birds"
        assert category.id == category_row["id"]
        assert category.title == "Birds"


class TestVideoRepository:
    """Tests for VideoRepository."""

    @pytest.mark.asyncio
    async def test_find_by_youtube_id(self, mock_database, video_row):
        mock_database.fetchrow.return_value = video_row

        video = await VideoRepository(mock_database).find_by_youtube_id("dQw4w9WgXcQ")

        assert video.youtube_id == "dQw4w9WgXcQ"
        assert video.length == 1000
        assert mock_database.fetchrow.call_args[0][1] == "dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_find_by_youtube_id_missing(self, mock_database):
        assert await VideoRepository(mock_database).find_by_youtube_id("nope") is None

    @pytest.mark.asyncio
    async def test_save_upserts_on_youtube_id(self, mock_database, video_row):
        mock_database.fetchrow.return_value = video_row
        upload = datetime(2025, 3, 1, tzinfo=timezone.utc)
        video = Video(
            youtube_id="dQw4w9WgXcQ",
            title="New title",
            description="New description",
            upload_date=upload,
            length=3730,
            category_id=video_row["category_id"],
            channel_id=None,
            thumbnail_url="https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
        )

        await VideoRepository(mock_database).save(video)

        sql, *args = mock_database.fetchrow.call_args[0]
        assert "ON CONFLICT (youtube_id) DO UPDATE" in sql
        assert "channel_id = EXCLUDED.channel_id" in sql
        assert args == [
            "dQw4w9WgXcQ",
            "New title",
            "New description",
            upload,
            3730,
            "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
            video_row["category_id"],
            None,
        ]

    @pytest.mark.asyncio
    async def test_save_failure_is_wrapped(self, mock_database, video_row):
        mock_database.fetchrow.side_effect = asyncpg.exceptions.ForeignKeyViolationError(
            "category missing"
        )
        video = Video(
            youtube_id="x",
            title="t",
            description="d",
            upload_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
            length=1000,
            category_id=video_row["category_id"],
        )

        with pytest.raises(PersistenceError, match="save video x"):
            await VideoRepository(mock_database).save(video)

    @pytest.mark.asyncio
    async def test_count(self, mock_database, channel_row):
        mock_database.fetchval.return_value = 7
        repo = VideoRepository(mock_database)

        assert await repo.count() == 7
        assert await repo.count(channel_id=channel_row["id"]) == 7
        assert mock_database.fetchval.call_args[0][1] == channel_row["id"]
