"""
FastAPI admin service.

Provides:
- POST /channels/fetch/trigger - Run channel ingestion now
- POST /videos/fetch/trigger - Run category ingestion now
- GET /health - Database and quota status
"""

from src.api.app import create_app

__all__ = ["create_app"]
