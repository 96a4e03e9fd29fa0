"""PostgreSQL connection management."""

from src.storage.database import Database

__all__ = ["Database"]
