import math
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dealer_analytics.schemas.common import CamelModel

PAGEVIEW_EVENT = "$pageview"


def _optional_text(value: Any) -> str | None:
    """Normalize a loosely typed provider value to a non-empty string or None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None


class EventProperties(BaseModel):
    """Typed view over the provider's open property bag.

    Only the keys the aggregator reads are kept. Malformed values degrade to
    None instead of failing validation so a single bad event never breaks a
    summary.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    current_url: str | None = Field(None, alias="$current_url")
    device_type: str | None = Field(None, alias="$device_type")
    session_duration: float | None = Field(None, alias="$session_duration")
    distinct_id: str | None = None

    @field_validator("current_url", "device_type", "distinct_id", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str | None:
        return _optional_text(v)

    @field_validator("session_duration", mode="before")
    @classmethod
    def coerce_duration(cls, v: Any) -> float | None:
        # bool is an int subclass; numeric strings are not durations
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        if not math.isfinite(v):
            return None
        return float(v)


class AnalyticsEvent(BaseModel):
    """A single raw event as returned by the analytics provider."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    kind: str = Field(..., alias="event")
    timestamp: datetime
    distinct_id: str | None = None
    properties: EventProperties = Field(default_factory=EventProperties)

    @field_validator("distinct_id", mode="before")
    @classmethod
    def coerce_distinct_id(cls, v: Any) -> str | None:
        return _optional_text(v)

    @field_validator("properties", mode="before")
    @classmethod
    def default_properties(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC; aware ones are converted to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def is_pageview(self) -> bool:
        return self.kind == PAGEVIEW_EVENT

    @property
    def identity(self) -> str | None:
        """Actor id: top-level first, then the copy nested in properties."""
        return self.distinct_id or self.properties.distinct_id


class PageviewsPoint(CamelModel):
    """Page views on one UTC calendar day."""

    day: date = Field(..., alias="date")
    pageviews: int


class TopPage(CamelModel):
    page: str
    views: int


class TopEvent(CamelModel):
    event: str
    count: int


class DeviceBreakdown(CamelModel):
    device: str
    count: int
    percentage: float


class AnalyticsSummary(CamelModel):
    """Aggregated dashboard metrics for one time window."""

    total_users: int
    total_pageviews: int
    total_events: int
    bounce_rate: float
    pageviews_over_time: list[PageviewsPoint]
    top_pages: list[TopPage]
    top_events: list[TopEvent]
    device_types: list[DeviceBreakdown]
    user_growth: float
    avg_session_duration: float


class AnalyticsSummaryResponse(AnalyticsSummary):
    """Summary plus the window it was computed for."""

    range: str  # "1d", "7d", "30d", "90d" or "custom"
    period_start: datetime
    period_end: datetime
    cached: bool = False
