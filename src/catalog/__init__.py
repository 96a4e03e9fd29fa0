"""Video catalog - schemas, repositories and upsert reconciliation."""

from src.catalog.reconciliation import ReconciliationEngine
from src.catalog.repository import (
    CategoryRepository,
    ChannelRepository,
    PersistenceError,
    VideoRepository,
    create_catalog_tables,
)
from src.catalog.schemas import Category, Channel, Video

__all__ = [
    "Category",
    "CategoryRepository",
    "Channel",
    "ChannelRepository",
    "PersistenceError",
    "ReconciliationEngine",
    "Video",
    "VideoRepository",
    "create_catalog_tables",
]
