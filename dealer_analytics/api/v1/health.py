import logging

from fastapi import APIRouter, Depends

from dealer_analytics.api.deps import get_posthog_client
from dealer_analytics.clients.posthog import PostHogClient
from dealer_analytics.core.exceptions import ServiceUnavailableError
from dealer_analytics.schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=MessageResponse)
async def health_check():
    """Basic health check endpoint."""
    return {"message": "healthy"}


@router.get("/ready", response_model=MessageResponse)
async def readiness_check(client: PostHogClient = Depends(get_posthog_client)):
    """Readiness check - verifies the analytics provider is configured."""
    if not client.configured:
        logger.error("Readiness check failed: analytics provider not configured")
        raise ServiceUnavailableError(detail="Service not ready")
    return {"message": "ready"}
