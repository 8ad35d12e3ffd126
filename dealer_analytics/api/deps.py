from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from redis.asyncio import Redis

from dealer_analytics.clients.posthog import PostHogClient
from dealer_analytics.core.exceptions import UnauthorizedError
from dealer_analytics.core.redis import get_redis_dep
from dealer_analytics.core.security import decode_token
from dealer_analytics.services.analytics_service import AnalyticsService

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Dashboard user resolved from a verified access token."""

    id: str
    email: str | None = None
    role: str | None = None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """Dependency to get the current authenticated user from JWT token."""
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    payload = decode_token(credentials.credentials)

    if not payload:
        raise UnauthorizedError("Invalid token")

    if payload.get("type") != "access":
        raise UnauthorizedError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    return CurrentUser(id=user_id, email=payload.get("email"), role=payload.get("role"))


async def get_posthog_client(request: Request) -> PostHogClient:
    """FastAPI dependency - returns the provider client from ``app.state``."""
    return request.app.state.posthog  # type: ignore[no-any-return]


async def get_analytics_service(
    client: PostHogClient = Depends(get_posthog_client),
    redis: Redis | None = Depends(get_redis_dep),
) -> AnalyticsService:
    return AnalyticsService(client, redis)
