"""Event aggregation for the dealership analytics dashboard.

``aggregate`` turns the raw events of a time window into the fixed set of
dashboard metrics in a single pass. It is a pure function: it performs no I/O,
does not log, and never modifies its input.

Conventions:

- Calendar days are UTC dates, for both the range endpoints and the event
  timestamps.
- Ranked lists order by count descending and then by key ascending, so equal
  counts come out in the same order regardless of the order events arrived in.
- Every ratio whose denominator is zero is reported as 0.
"""

from collections import Counter
from collections.abc import Iterator, Sequence
from datetime import date, datetime, timedelta, timezone
from urllib.parse import urlsplit

from dealer_analytics.schemas.analytics import (
    AnalyticsEvent,
    AnalyticsSummary,
    DeviceBreakdown,
    PageviewsPoint,
    TopEvent,
    TopPage,
)

TOP_N = 10
UNKNOWN = "Unknown"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _percent(part: float, whole: float) -> float:
    return part * 100 / whole if whole else 0.0


def _ranked(counts: Counter[str]) -> list[tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def _calendar_days(first: date, last: date) -> Iterator[date]:
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


def page_key(url: str | None) -> str:
    """Key a page view by URL path.

    Absolute URLs are reduced to their path. Relative or malformed values are
    kept verbatim, and a missing URL is keyed as ``"Unknown"``. Both scheme and
    host are required, so host-less forms like ``file:///tmp/x`` stay verbatim too.
    """
    if url is None:
        return UNKNOWN
    try:
        parts = urlsplit(url)
        _ = parts.port  # raises on a malformed port
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    return parts.path or "/"


def pageviews_over_time(
    pageviews_per_day: Counter[date], range_start: datetime, range_end: datetime
) -> list[PageviewsPoint]:
    """One point per UTC calendar day from the start date to the end date inclusive."""
    first = _as_utc(range_start).date()
    last = _as_utc(range_end).date()
    return [
        PageviewsPoint(day=day, pageviews=pageviews_per_day.get(day, 0))
        for day in _calendar_days(first, last)
    ]


def aggregate(
    events: Sequence[AnalyticsEvent], range_start: datetime, range_end: datetime
) -> AnalyticsSummary:
    """Compute the dashboard summary for ``events`` observed in [range_start, range_end].

    Raises:
        TypeError: If ``events`` is not a list or tuple of AnalyticsEvent.
    """
    if not isinstance(events, (list, tuple)):
        raise TypeError(f"events must be a list of AnalyticsEvent, got {type(events).__name__}")

    start = _as_utc(range_start)
    end = _as_utc(range_end)
    midpoint = start + (end - start) / 2

    pageviews = 0
    users: set[str] = set()
    first_half_users: set[str] = set()
    second_half_users: set[str] = set()
    pageviews_per_user: Counter[str] = Counter()
    pageviews_per_day: Counter[date] = Counter()
    page_counts: Counter[str] = Counter()
    event_counts: Counter[str] = Counter()
    device_counts: Counter[str] = Counter()
    durations: list[float] = []

    for event in events:
        if not isinstance(event, AnalyticsEvent):
            raise TypeError(f"expected AnalyticsEvent, got {type(event).__name__}")

        identity = event.identity
        props = event.properties

        if event.is_pageview:
            pageviews += 1
            page_counts[page_key(props.current_url)] += 1
            pageviews_per_day[event.timestamp.date()] += 1
            if identity:
                pageviews_per_user[identity] += 1
        else:
            event_counts[event.kind] += 1

        device_counts[props.device_type or UNKNOWN] += 1

        if props.session_duration is not None and props.session_duration > 0:
            durations.append(props.session_duration)

        if identity:
            users.add(identity)
            if event.timestamp < midpoint:
                first_half_users.add(identity)
            else:
                second_half_users.add(identity)

    single_page_users = sum(1 for count in pageviews_per_user.values() if count == 1)
    device_total = sum(device_counts.values())
    first_half = len(first_half_users)

    return AnalyticsSummary(
        total_users=len(users),
        total_pageviews=pageviews,
        total_events=len(events) - pageviews,
        bounce_rate=_percent(single_page_users, len(users)),
        pageviews_over_time=pageviews_over_time(pageviews_per_day, start, end),
        top_pages=[TopPage(page=page, views=views) for page, views in _ranked(page_counts)[:TOP_N]],
        top_events=[
            TopEvent(event=kind, count=count) for kind, count in _ranked(event_counts)[:TOP_N]
        ],
        device_types=[
            DeviceBreakdown(device=device, count=count, percentage=_percent(count, device_total))
            for device, count in _ranked(device_counts)
        ],
        # Saturates to 0 when nobody was seen in the first half
        user_growth=_percent(len(second_half_users) - first_half, first_half),
        avg_session_duration=sum(durations) / len(durations) if durations else 0.0,
    )
