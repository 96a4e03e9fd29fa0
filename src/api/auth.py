"""
Authentication for the manual fetch triggers using the X-API-KEY header.
"""

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from src.config.settings import get_settings

# API key header scheme
api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)


async def verify_manual_fetch_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Compare the X-API-KEY header with MANUAL_FETCH_API_KEY.

    Returns:
        The validated API key

    Raises:
        HTTPException: 503 if no key is configured, 401 if the header is
            missing or does not match
    """
    settings = get_settings()
    expected = settings.manual_fetch_api_key

    # Triggers stay closed until a key is configured
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Manual fetch is disabled: MANUAL_FETCH_API_KEY is not configured.",
        )

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key
