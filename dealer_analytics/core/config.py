import logging
import sys
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder keys shipped in sample env files
INSECURE_SECRET_KEYS = frozenset(
    {
        "change-me-in-production",
        "your-super-secret-key-at-least-32-chars",
        "dev-secret-key-not-for-production",
        "dev-secret-key-change-in-production-min32chars",
    }
)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class Settings(BaseSettings):
    """Service settings, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "Dealer Analytics"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Dashboard access tokens are issued elsewhere; this service only verifies them
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Dashboard origins allowed to call the API; none unless configured
    CORS_ORIGINS: list[str] = []
    RATE_LIMIT_PER_MINUTE: int = 60

    # Summary cache, also used as rate-limit storage
    REDIS_URL: str = "redis://localhost:6379/0"
    ANALYTICS_CACHE_TTL_SECONDS: int = 300  # 0 turns the cache off

    # PostHog event source
    POSTHOG_API_URL: str = "https://us.i.posthog.com/api"
    POSTHOG_API_KEY: str | None = None
    POSTHOG_PROJECT_ID: str | None = None
    POSTHOG_TIMEOUT_SECONDS: float = 10.0
    POSTHOG_PAGE_SIZE: int = 1000
    POSTHOG_MAX_PAGES: int = 20

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters")
        if v in INSECURE_SECRET_KEYS:
            raise ValueError("SECRET_KEY must be changed from default value")
        return v

    @field_validator("POSTHOG_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("POSTHOG_PAGE_SIZE", "POSTHOG_MAX_PAGES")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def setup_logging() -> None:
    """Send application logs to stdout at ``LOG_LEVEL``."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # Per-request access lines and outbound PostHog calls are only wanted when debugging
    chatty = logging.INFO if settings.DEBUG else logging.WARNING
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(chatty)
