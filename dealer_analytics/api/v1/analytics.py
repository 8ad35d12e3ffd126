import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from dealer_analytics.api.deps import CurrentUser, get_analytics_service, get_current_user
from dealer_analytics.clients.posthog import AnalyticsNotConfiguredError, AnalyticsProviderError
from dealer_analytics.core.config import settings
from dealer_analytics.core.exceptions import BadGatewayError, ConfigurationError
from dealer_analytics.core.limiter import limiter
from dealer_analytics.schemas.analytics import AnalyticsSummaryResponse
from dealer_analytics.services.analytics_service import AnalyticsService, summary_cache_key

logger = logging.getLogger(__name__)

router = APIRouter()

PERIOD_DAYS = {"1d": 1, "7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "7d"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_date_range(
    start: datetime | None, end: datetime | None, period: str = DEFAULT_PERIOD
) -> tuple[datetime, datetime]:
    """Parse date range from query params or the range selector.

    Explicit bounds win; a missing start is filled in as ``end`` minus the
    selector's number of days.
    """
    days = PERIOD_DAYS.get(period, PERIOD_DAYS[DEFAULT_PERIOD])
    end = _as_utc(end) if end is not None else datetime.now(timezone.utc)
    start = _as_utc(start) if start is not None else end - timedelta(days=days)
    return start, end


@router.get("/summary", response_model=AnalyticsSummaryResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def get_summary(
    request: Request,
    period: str = Query(DEFAULT_PERIOD, alias="range", pattern="^(1d|7d|30d|90d)$"),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    refresh: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Get the dashboard analytics summary for a time window."""
    start_dt, end_dt = _parse_date_range(start, end, period)
    if start_dt > end_dt:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start must not be after end",
        )

    if start is None and end is None:
        label = period
        cache_key = summary_cache_key(period)
    else:
        label = "custom"
        cache_key = summary_cache_key(label, start_dt, end_dt)

    if refresh:
        await service.invalidate(cache_key)

    try:
        return await service.get_summary(start_dt, end_dt, period=label, cache_key=cache_key)
    except AnalyticsNotConfiguredError:
        logger.error("Analytics requested but PostHog credentials are not configured")
        raise ConfigurationError("Analytics provider credentials not configured") from None
    except AnalyticsProviderError as e:
        logger.error(f"Analytics API error for user {current_user.id}: {e}")
        raise BadGatewayError("Failed to fetch analytics data") from None
