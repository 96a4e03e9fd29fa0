"""
Dependency injection for FastAPI endpoints.
"""

from fastapi import Depends, HTTPException, status

from src.ingestion.orchestrator import IngestionOrchestrator
from src.ingestion.runtime import IngestionRuntime

# Process-wide runtime, installed by the app lifespan or by the CLI
_runtime: IngestionRuntime | None = None


def set_runtime(runtime: IngestionRuntime | None) -> None:
    """Install (or clear) the runtime the endpoints operate on."""
    global _runtime
    _runtime = runtime


def get_runtime() -> IngestionRuntime:
    if _runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return _runtime


def get_orchestrator(
    runtime: IngestionRuntime = Depends(get_runtime),
) -> IngestionOrchestrator:
    """The shared orchestrator, or 503 when no YouTube API key is configured."""
    if not runtime.ingestion_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ingestion is disabled: YOUTUBE_API_KEY is not configured.",
        )
    return runtime.orchestrator
