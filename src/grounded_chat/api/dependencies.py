"""FastAPI dependency injection providers.

The Redis client, the shared HTTP client, the scrape service and the rate
limiter are created once in the application lifespan (``api/main.py``) and
stored on ``app.state``.  Route handlers reach them only through the
providers below, so tests can swap any of them by assigning to
``app.state`` before issuing requests.
"""

from __future__ import annotations

import httpx
import redis.asyncio as aioredis
from fastapi import Request

from grounded_chat.config.settings import Settings
from grounded_chat.core.rate_limiter import RateLimiter
from grounded_chat.scraper.cache import ScrapeCache
from grounded_chat.scraper.cache_store import RedisKeyValueStore
from grounded_chat.scraper.service import ScrapeService


# ---------------------------------------------------------------------------
# Factories (used by the lifespan)
# ---------------------------------------------------------------------------


def create_redis_client(settings: Settings) -> aioredis.Redis:
    """Return an async Redis client for ``settings.redis_url``.

    The connection is opened lazily on first command.  Responses are decoded
    to ``str`` because both the cache and the limiter deal in text.
    """
    return aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )


def create_scrape_service(
    settings: Settings,
    redis_client: aioredis.Redis,
    http_client: httpx.AsyncClient,
) -> ScrapeService:
    """Wire a :class:`ScrapeService` to Redis and the shared HTTP client."""
    return ScrapeService(
        cache=ScrapeCache(RedisKeyValueStore(redis_client)),
        client=http_client,
        timeout=settings.fetch_timeout,
    )


def create_rate_limiter(settings: Settings, redis_client: aioredis.Redis) -> RateLimiter:
    """Build the request :class:`RateLimiter` from settings."""
    return RateLimiter(
        redis_client,
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


# ---------------------------------------------------------------------------
# Request-scoped providers
# ---------------------------------------------------------------------------


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was built with."""
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Return the shared outbound HTTP client."""
    return request.app.state.http_client


def get_redis(request: Request) -> aioredis.Redis:
    """Return the shared Redis client."""
    return request.app.state.redis


def get_scrape_service(request: Request) -> ScrapeService:
    """Return the application's :class:`ScrapeService`."""
    return request.app.state.scrape_service
