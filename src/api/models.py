"""
Request and response models for the admin API.
"""

from pydantic import BaseModel, Field


class TriggerResponse(BaseModel):
    """Acknowledgement returned once a manual run has completed."""

    message: str


class ComponentHealth(BaseModel):
    """Health of one infrastructure dependency."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = None
    details: dict = Field(default_factory=dict)


class QuotaStatus(BaseModel):
    """YouTube API quota usage in the current UTC day."""

    used: int
    limit: int
    remaining: int
    near_exhaustion: bool


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    quota: QuotaStatus | None = Field(
        default=None,
        description="Quota usage; absent when ingestion is disabled",
    )
    ingestion_running: bool = False
    version: str = "0.1.0"
