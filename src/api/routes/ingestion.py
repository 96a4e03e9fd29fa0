"""
Manual fetch triggers.

Each endpoint runs one ingestion mode to completion and returns a plain
acknowledgement; per-source results are in the logs and in storage.
"""

import structlog
from fastapi import APIRouter, Depends

from src.api.auth import verify_manual_fetch_key
from src.api.dependencies import get_orchestrator
from src.api.models import TriggerResponse
from src.ingestion.orchestrator import MODE_CATEGORIES, MODE_CHANNELS, IngestionOrchestrator

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "/channels/fetch/trigger",
    response_model=TriggerResponse,
    summary="Fetch videos for all configured channels",
)
async def trigger_channel_fetch(
    _api_key: str = Depends(verify_manual_fetch_key),
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
) -> TriggerResponse:
    logger.info("Manual channel fetch triggered")
    ack = await orchestrator.trigger(MODE_CHANNELS)
    return TriggerResponse(**ack)


@router.post(
    "/videos/fetch/trigger",
    response_model=TriggerResponse,
    summary="Fetch videos for all configured categories",
)
async def trigger_category_fetch(
    _api_key: str = Depends(verify_manual_fetch_key),
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
) -> TriggerResponse:
    logger.info("Manual category fetch triggered")
    ack = await orchestrator.trigger(MODE_CATEGORIES)
    return TriggerResponse(**ack)
