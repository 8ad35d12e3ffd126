import logging
from datetime import datetime

from pydantic import ValidationError
from redis.asyncio import Redis

from dealer_analytics.clients.posthog import PostHogClient
from dealer_analytics.core.config import settings
from dealer_analytics.core.redis import safe_redis_delete, safe_redis_get, safe_redis_setex
from dealer_analytics.schemas.analytics import AnalyticsSummaryResponse
from dealer_analytics.services.aggregator import aggregate

logger = logging.getLogger(__name__)

CACHE_PREFIX = "analytics:summary:"


def summary_cache_key(
    period: str, start: datetime | None = None, end: datetime | None = None
) -> str:
    """Cache key for a selector window, or for an explicit start/end window."""
    if start is None and end is None:
        return f"{CACHE_PREFIX}{period}"
    start_part = start.isoformat() if start else ""
    end_part = end.isoformat() if end else ""
    return f"{CACHE_PREFIX}{period}:{start_part}:{end_part}"


class AnalyticsService:
    """Service for dashboard analytics summaries."""

    def __init__(
        self,
        client: PostHogClient,
        redis: Redis | None = None,
        cache_ttl: int | None = None,
    ):
        self.client = client
        self.redis = redis
        self.cache_ttl = settings.ANALYTICS_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl

    @property
    def caching_enabled(self) -> bool:
        return self.redis is not None and self.cache_ttl > 0

    async def _load_cached(self, cache_key: str) -> AnalyticsSummaryResponse | None:
        raw = await safe_redis_get(cache_key, client=self.redis)
        if raw is None:
            return None
        try:
            cached = AnalyticsSummaryResponse.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cached summary %s", cache_key)
            await safe_redis_delete(cache_key, client=self.redis)
            return None
        return cached.model_copy(update={"cached": True})

    async def get_summary(
        self,
        start: datetime,
        end: datetime,
        *,
        period: str = "custom",
        cache_key: str | None = None,
    ) -> AnalyticsSummaryResponse:
        """Get the dashboard summary for [start, end].

        Serves a cached summary when ``cache_key`` is given and present,
        otherwise fetches events from the provider and aggregates them. A
        cache hit reports the window it was originally computed for.

        Raises:
            AnalyticsClientError: If the provider is not configured or fails.
        """
        use_cache = cache_key is not None and self.caching_enabled

        if use_cache:
            cached = await self._load_cached(cache_key)
            if cached is not None:
                logger.debug("Analytics summary cache hit: %s", cache_key)
                return cached

        events = await self.client.fetch_events(start, end)
        summary = aggregate(events, start, end)
        logger.info(
            "Aggregated %d events for %s (%d users, %d pageviews)",
            len(events),
            period,
            summary.total_users,
            summary.total_pageviews,
        )

        response = AnalyticsSummaryResponse(
            **summary.model_dump(),
            range=period,
            period_start=start,
            period_end=end,
        )
        if use_cache:
            await safe_redis_setex(
                cache_key, self.cache_ttl, response.model_dump_json(), client=self.redis
            )
        return response

    async def invalidate(self, cache_key: str) -> bool:
        """Drop a cached summary. Returns True if one was removed."""
        return await safe_redis_delete(cache_key, client=self.redis) > 0
