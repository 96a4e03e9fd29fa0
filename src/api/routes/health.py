"""
Health check endpoint: database reachability and quota usage.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_runtime
from src.api.models import ComponentHealth, HealthResponse, QuotaStatus
from src.ingestion.runtime import IngestionRuntime
from src.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    healthy = await db.health_check()
    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round(latency_ms, 2),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check database connectivity and YouTube quota usage.",
)
async def health_check(
    runtime: IngestionRuntime = Depends(get_runtime),
) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: ingestion disabled (no YouTube API key)
    - healthy: all components operational
    """
    db_health = await _check_database(runtime.database)

    used, limit = runtime.quota.usage()
    quota = QuotaStatus(
        used=used,
        limit=limit,
        remaining=runtime.quota.remaining,
        near_exhaustion=runtime.quota.near_exhaustion(),
    )

    if db_health.status == "unhealthy":
        status = "unhealthy"
    elif not runtime.ingestion_enabled:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        components={"database": db_health},
        quota=quota,
        ingestion_running=(
            runtime.orchestrator.is_running if runtime.ingestion_enabled else False
        ),
    )
