"""Generate a realistic fake dealership event stream and print its summary.

Useful for checking dashboard rendering without PostHog credentials.

Usage:
    python -m scripts.sample_summary [--days 7] [--count 2000] [--seed 42]
"""

import argparse
import json
import random
from datetime import datetime, timedelta, timezone

from dealer_analytics.schemas.analytics import PAGEVIEW_EVENT, AnalyticsEvent
from dealer_analytics.services.aggregator import aggregate

PAGES = [
    "/",
    "/inventory",
    "/inventory/isuzu-npr-400-2019",
    "/inventory/hino-500-1627-2021",
    "/inventory/ud-quon-gw-26-460-2018",
    "/specials",
    "/sell-your-truck",
    "/contact",
]

EVENTS = [
    (PAGEVIEW_EVENT, 70),
    ("$pageleave", 10),
    ("$autocapture", 8),
    ("enquiry_submitted", 4),
    ("trade_in_submitted", 3),
    ("whatsapp_click", 5),
]

DEVICES = [("Desktop", 45), ("Mobile", 45), ("Tablet", 8), (None, 2)]


def generate_events(count: int, days: int) -> list[dict]:
    """Generate PostHog-shaped raw event records."""
    now = datetime.now(timezone.utc)
    start = now - timedelta(days=days)
    events = []

    num_users = max(count // 15, 10)
    users = [f"visitor_{i}" for i in range(num_users)]

    event_names = [e[0] for e in EVENTS]
    event_weights = [e[1] for e in EVENTS]
    device_names = [d[0] for d in DEVICES]
    device_weights = [d[1] for d in DEVICES]

    for _ in range(count):
        event_name = random.choices(event_names, weights=event_weights, k=1)[0]
        ts = start + timedelta(seconds=random.randint(0, days * 86400))
        properties: dict = {"$current_url": f"https://example.com{random.choice(PAGES)}"}

        device = random.choices(device_names, weights=device_weights, k=1)[0]
        if device:
            properties["$device_type"] = device
        if event_name == "$pageleave":
            properties["$session_duration"] = random.randint(5, 900)

        evt = {"event": event_name, "timestamp": ts.isoformat(), "properties": properties}

        # Some visitors are only identified through the property bag
        user = random.choice(users) if random.random() > 0.1 else None
        if user and random.random() > 0.2:
            evt["distinct_id"] = user
        elif user:
            properties["distinct_id"] = user

        events.append(evt)

    return events


def main():
    parser = argparse.ArgumentParser(description="Print a sample analytics summary")
    parser.add_argument("--count", type=int, default=2000, help="Number of events")
    parser.add_argument("--days", type=int, default=7, help="Days of history")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    end = datetime.now(timezone.utc)
    start = end - timedelta(days=args.days)
    raw_events = generate_events(args.count, args.days)
    events = [AnalyticsEvent.model_validate(raw) for raw in raw_events]

    summary = aggregate(events, start, end)
    print(json.dumps(summary.model_dump(mode="json", by_alias=True), indent=2))


if __name__ == "__main__":
    main()
