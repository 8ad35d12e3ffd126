"""External analytics provider clients."""

from dealer_analytics.clients.posthog import (
    AnalyticsClientError,
    AnalyticsNotConfiguredError,
    AnalyticsProviderError,
    PostHogClient,
)

__all__ = [
    "AnalyticsClientError",
    "AnalyticsNotConfiguredError",
    "AnalyticsProviderError",
    "PostHogClient",
]
