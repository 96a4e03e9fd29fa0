"""Configuration for the ingestion orchestrator and scheduler."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHANNELS = [
    "fourpawstv",
    "PaulDinningVideosforCats",
    "BirderKing",
    "BirdsandSquirrelsWonderl",
    "PaulBirder",
    "catgamegarden",
    "catgametv",
    "BirderChieu",
    "CatFlixVideosforCats",
    "RedSquirrelStudios",
    "BirdsForCatsTV-x5p",
]


class CategorySource(BaseModel):
    """A category filled by keyword search rather than by channel."""

    title: str
    query: str


DEFAULT_CATEGORIES = [
    CategorySource(title="Featured", query="cats entertainment"),
    CategorySource(title="Birds", query="birds for cats to watch"),
    CategorySource(title="Fish", query="aquarium for cats"),
    CategorySource(title="Squirrels", query="squirrels for cats to watch"),
]


class IngestionConfig(BaseSettings):
    """
    Which sources are ingested, in which order, and how often.

    Lists are read from JSON in the environment, e.g.
        INGESTION_CHANNELS='["fourpawstv", "catgametv"]'
        INGESTION_CATEGORIES='[{"title": "Birds", "query": "birds for cats"}]'
    """

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    channels: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CHANNELS),
        description="Channel names ingested by run_channels, in order",
    )
    categories: list[CategorySource] = Field(
        default_factory=lambda: [c.model_copy() for c in DEFAULT_CATEGORIES],
        description="Keyword categories ingested by run_categories, in order",
    )
    category_max_results: int = Field(
        default=50,
        ge=1,
        description="Videos collected per category search",
    )
    channel_title_prefix: str = Field(
        default="Channel: ",
        description="Channel videos are filed under '<prefix><channel name>'",
    )
    channel_interval_hours: float = Field(
        default=6.0,
        gt=0.0,
        description="Hours between scheduled channel runs",
    )
    category_interval_hours: float = Field(
        default=24.0,
        gt=0.0,
        description="Hours between scheduled category runs",
    )
