"""Async client for the PostHog events API.

The dashboard's raw analytics events live in PostHog. This client pulls every
event of a time window, following the API's ``next`` links, and validates each
record into an ``AnalyticsEvent``. One instance is created per process and
closed on shutdown.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from dealer_analytics.core.config import Settings
from dealer_analytics.schemas.analytics import AnalyticsEvent

logger = logging.getLogger(__name__)


class AnalyticsClientError(RuntimeError):
    """Base error for analytics provider requests."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AnalyticsNotConfiguredError(AnalyticsClientError):
    """Raised when the provider API key or project id is missing."""


class AnalyticsProviderError(AnalyticsClientError):
    """Raised when the provider is unreachable, times out or returns an error."""


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class PostHogClient:
    """Fetches raw events for a project from PostHog."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        project_id: str | None,
        *,
        timeout: float = 10.0,
        page_size: int = 1000,
        max_pages: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = (api_key or "").strip()
        self.project_id = (project_id or "").strip()
        self.page_size = page_size
        self.max_pages = max_pages
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), headers=headers, transport=transport
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> PostHogClient:
        return cls(
            settings.POSTHOG_API_URL,
            settings.POSTHOG_API_KEY,
            settings.POSTHOG_PROJECT_ID,
            timeout=settings.POSTHOG_TIMEOUT_SECONDS,
            page_size=settings.POSTHOG_PAGE_SIZE,
            max_pages=settings.POSTHOG_MAX_PAGES,
            **kwargs,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.project_id)

    @property
    def events_url(self) -> str:
        return f"{self.api_url}/projects/{self.project_id}/events/"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> PostHogClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _get_page(self, url: str, params: dict[str, Any] | None) -> dict[str, Any]:
        try:
            resp = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise AnalyticsProviderError(f"PostHog request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise AnalyticsProviderError(f"PostHog request failed: {e}") from e

        if resp.status_code >= 400:
            raise AnalyticsProviderError(
                f"PostHog API error: {resp.status_code}", status=resp.status_code
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise AnalyticsProviderError(
                "PostHog returned a non-JSON response", status=resp.status_code
            ) from e
        if not isinstance(payload, dict):
            raise AnalyticsProviderError(
                "PostHog returned an unexpected payload", status=resp.status_code
            )
        return payload

    async def fetch_events(self, start: datetime, end: datetime) -> list[AnalyticsEvent]:
        """Fetch every event between ``start`` and ``end``.

        Records that fail validation are skipped and counted in a warning.

        Raises:
            AnalyticsNotConfiguredError: If credentials are missing.
            AnalyticsProviderError: If any page request fails.
        """
        if not self.configured:
            raise AnalyticsNotConfiguredError("PostHog API credentials not configured")

        events: list[AnalyticsEvent] = []
        skipped = 0
        url: str | None = self.events_url
        params: dict[str, Any] | None = {
            "after": _isoformat(start),
            "before": _isoformat(end),
            "limit": self.page_size,
        }
        pages = 0

        while url and pages < self.max_pages:
            payload = await self._get_page(url, params)
            pages += 1
            for raw in payload.get("results") or []:
                try:
                    events.append(AnalyticsEvent.model_validate(raw))
                except ValidationError as e:
                    skipped += 1
                    logger.debug("Skipping malformed PostHog event: %s", e)
            url = payload.get("next")
            # The next link already carries the query string
            params = None

        if url:
            logger.warning(
                "PostHog window %s..%s truncated after %d pages (%d events)",
                _isoformat(start),
                _isoformat(end),
                pages,
                len(events),
            )
        if skipped:
            logger.warning("Skipped %d malformed PostHog events", skipped)

        logger.info("Fetched %d PostHog events in %d page(s)", len(events), pages)
        return events
