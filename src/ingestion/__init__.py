"""Ingestion pipeline - cursor bookkeeping, run orchestration and scheduling."""

from src.ingestion.config import CategorySource, IngestionConfig
from src.ingestion.cursor import IndexState, IngestionCursor
from src.ingestion.orchestrator import IngestionOrchestrator, IngestionRunResult

__all__ = [
    "CategorySource",
    "IndexState",
    "IngestionConfig",
    "IngestionCursor",
    "IngestionOrchestrator",
    "IngestionRunResult",
]
