import os
from collections.abc import AsyncGenerator
from typing import Any

import fakeredis
import fakeredis.aioredis
import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Set test env vars before importing app modules
os.environ["SECRET_KEY"] = "test-secret-key-must-be-at-least-32-characters-long"
os.environ["REDIS_URL"] = "memory://"
os.environ["POSTHOG_API_KEY"] = "phx_test_key"
os.environ["POSTHOG_PROJECT_ID"] = "12345"

POSTHOG_TEST_URL = "https://posthog.test/api"

# Shared FakeServer holds state; each call creates a fresh client
# bound to the current event loop (avoids pytest-asyncio loop mismatch).
_fake_server = fakeredis.FakeServer()


def _make_fake_redis():
    """Create a fakeredis instance bound to the shared server."""
    return fakeredis.aioredis.FakeRedis(server=_fake_server, decode_responses=True)


class FakePostHog:
    """httpx mock transport handler that serves canned PostHog event pages."""

    def __init__(self) -> None:
        self.pages: list[list[dict[str, Any]]] = [[]]
        self.status_code = 200
        self.raise_exc: Exception | None = None
        self.requests: list[httpx.Request] = []

    @property
    def results(self) -> list[dict[str, Any]]:
        return self.pages[0]

    @results.setter
    def results(self, value: list[dict[str, Any]]) -> None:
        self.pages = [value]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"detail": "upstream error"})

        page = int(request.url.params.get("page", "0"))
        next_url = None
        if page + 1 < len(self.pages):
            next_url = f"{POSTHOG_TEST_URL}/projects/12345/events/?page={page + 1}"
        return httpx.Response(200, json={"results": self.pages[page], "next": next_url})


@pytest.fixture(autouse=True)
async def reset_state():
    from dealer_analytics.core.limiter import limiter

    # Rate limiting is off by default; tests that need it enable it explicitly
    limiter.enabled = False

    r = _make_fake_redis()
    await r.flushall()
    yield
    limiter.enabled = False


@pytest.fixture
async def fake_redis():
    """Provide a fakeredis instance for direct use in tests."""
    return _make_fake_redis()


@pytest.fixture
def posthog() -> FakePostHog:
    return FakePostHog()


@pytest.fixture
async def posthog_client(posthog: FakePostHog) -> AsyncGenerator[Any, None]:
    from dealer_analytics.clients.posthog import PostHogClient

    async with PostHogClient(
        POSTHOG_TEST_URL,
        "phx_test_key",
        "12345",
        timeout=5.0,
        transport=httpx.MockTransport(posthog),
    ) as client:
        yield client


@pytest.fixture
async def client(posthog_client) -> AsyncGenerator[AsyncClient, None]:
    from dealer_analytics.core.redis import get_redis_dep
    from dealer_analytics.main import app

    async def override_get_redis_dep():
        return _make_fake_redis()

    app.dependency_overrides[get_redis_dep] = override_get_redis_dep
    app.state.posthog = posthog_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Get auth headers for authenticated requests."""
    from dealer_analytics.core.security import create_access_token

    token, _ = create_access_token(subject=1, email="sales@example.com", role="admin")
    return {"Authorization": f"Bearer {token}"}
