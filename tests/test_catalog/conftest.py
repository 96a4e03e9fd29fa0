"""Shared fixtures for catalog tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

CHANNEL_UUID = UUID("00000000-0000-0000-0000-0000000000c1")
CATEGORY_UUID = UUID("00000000-0000-0000-0000-0000000000a1")
VIDEO_UUID = UUID("00000000-0000-0000-0000-0000000000f1")


@pytest.fixture
def mock_database() -> AsyncMock:
    """Mock Database instance matching the Database API."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="UPDATE 1")
    return db


@pytest.fixture
def channel_row() -> dict:
    """A dict mimicking an asyncpg Record for a channel."""
    return {
        "id": CHANNEL_UUID,
        "youtube_channel_id": "UC123",
        "name": "Four Paws TV",
        "description": "Videos for cats",
        "thumbnail_url": "https://yt3.test/high.jpg",
        "social_links": {"instagram": "https://instagram.com/fourpaws", "website": None},
        "is_active": True,
        "last_fetched_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "last_fetched_video_id": "vid_newest",
        "total_videos": 120,
        "is_fully_indexed": False,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def category_row() -> dict:
    return {
        "id": CATEGORY_UUID,
        "title": "Birds",
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def video_row() -> dict:
    """A dict mimicking an asyncpg Record for a video."""
    return {
        "id": VIDEO_UUID,
        "youtube_id": "dQw4w9WgXcQ",
        "title": "Old title",
        "description": "Old description",
        "upload_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "length": 1000,
        "thumbnail_url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hq.jpg",
        "category_id": CATEGORY_UUID,
        "channel_id": CHANNEL_UUID,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
