"""
Authentication utilities for Geospatial Anchor Service API
Simple API key validation, relaxed in development
"""

import logging
from fastapi import HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from typing import Optional

from .config import settings

logger = logging.getLogger(__name__)

# API Key authentication
api_key_header = APIKeyHeader(name=settings.API_KEY_HEADER, auto_error=False)


async def verify_api_key(api_key: Optional[str] = Security(api_key_header)) -> str:
    """
    Verify API key for authentication

    In development any key (or none) is accepted
    """

    if settings.is_development:
        return api_key or "dev-key"

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    if api_key not in settings.API_KEYS:
        logger.warning(f"Invalid API key attempted: {api_key[:10]}...")
        raise HTTPException(
            status_code=401,
            detail="Invalid API key"
        )

    return api_key
