"""Upsert of fetched videos into the catalog by their YouTube id."""

import logging
from uuid import UUID

from src.catalog.repository import VideoRepository
from src.catalog.schemas import Video
from src.youtube.schemas import YouTubeVideo

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Merges fetched videos into storage.

    Stateless: the engine holds only the repository it writes through.
    Storage failures propagate as PersistenceError; the caller decides
    whether one bad video should abort anything.
    """

    def __init__(self, videos: VideoRepository) -> None:
        self._videos = videos

    async def upsert(
        self,
        video: YouTubeVideo,
        category_id: UUID,
        channel_id: UUID | None = None,
    ) -> Video:
        """
        Insert the video, or overwrite the stored row's mutable fields.

        Every mutable field is replaced, ``channel_id=None`` included, so
        repeated calls converge on the latest values seen.
        """
        existing = await self._videos.find_by_youtube_id(video.youtube_id)

        if existing is not None:
            existing.title = video.title
            existing.description = video.description
            existing.upload_date = video.upload_date
            existing.length = video.length
            existing.thumbnail_url = video.thumbnail_url
            existing.category_id = category_id
            existing.channel_id = channel_id
            record = existing
        else:
            record = Video(
                youtube_id=video.youtube_id,
                title=video.title,
                description=video.description,
                upload_date=video.upload_date,
                length=video.length,
                thumbnail_url=video.thumbnail_url,
                category_id=category_id,
                channel_id=channel_id,
            )

        saved = await self._videos.save(record)
        logger.debug(
            "%s video %s", "Updated" if existing else "Inserted", video.youtube_id
        )
        return saved
