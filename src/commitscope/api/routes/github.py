"""
GitHub connection API routes.
"""

import logging

import httpx
from fastapi import APIRouter, HTTPException

from commitscope.api.schemas import GitHubStatusResponse, RateLimitResponse
from commitscope.collector import gateway_from_settings
from commitscope.config import settings
from commitscope.exceptions import GatewayError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/github/status", response_model=GitHubStatusResponse)
async def github_status() -> GitHubStatusResponse:
    """Report whether a GitHub token is configured."""
    return GitHubStatusResponse(
        configured=bool(settings.github_token),
        username=settings.github_username,
    )


@router.get("/github/rate-limit", response_model=RateLimitResponse)
async def github_rate_limit() -> RateLimitResponse:
    """
    Get the rate limit of the configured token.

    Raises:
        HTTPException: 503 without a token, 502 if GitHub cannot be reached
    """
    if not settings.github_token:
        raise HTTPException(status_code=503, detail="GitHub token not configured")

    try:
        async with gateway_from_settings(settings)(settings.github_token) as gateway:
            limit = await gateway.rate_limit()
    except (GatewayError, httpx.HTTPError) as e:
        logger.error(f"Failed to check rate limit: {e}")
        raise HTTPException(status_code=502, detail="Failed to check rate limit")

    return RateLimitResponse(
        remaining=limit.remaining, limit=limit.limit, reset_at=limit.reset_at
    )
