"""Route tests for the FastAPI application.

The application is built with ``create_app()`` and driven in-process through
``httpx.ASGITransport``.  The lifespan does not run under the transport, so
each test wires ``app.state`` itself: a ScrapeService over the in-memory
store with a stub fetcher, a RateLimiter over an emulated Redis and, for
``/api/chat``, a patched ``chat_completion``.

Tests cover:
- POST /api/chat grounds the prompt on the first URL's content
- POST /api/chat without a URL, and LLM failures mapped to 502 / 503
- POST /api/scrape returns camelCase ScrapedContent or 422 without a URL
- Rate-limit headers on admitted responses and the 429 denial
- X-Forwarded-For identity, exempt paths, X-Request-ID
- GET /health, GET /api/health (ok and degraded), GET /metrics
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from grounded_chat.api.main import create_app
from grounded_chat.config.settings import Settings
from grounded_chat.core.exceptions import ChatCompletionError, ChatRateLimitError
from grounded_chat.core.rate_limiter import RateLimiter
from grounded_chat.scraper.cache import ScrapeCache
from grounded_chat.scraper.http_fetcher import FetchResult
from grounded_chat.scraper.service import ScrapeService

PAGE_URL = "https://example.com/a?b=1"

PAGE_HTML = (
    "<html><head><title>T</title></head>"
    "<body><h1>H1</h1><p>Para text</p></body></html>"
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class _WindowRedis:
    """Minimal emulation of the admission script over in-memory lists."""

    def __init__(self) -> None:
        self.windows: dict[str, list[int]] = {}

    async def script_load(self, script: str) -> str:
        return "sha"

    async def evalsha(self, sha: str, numkeys: int, key: str, *args: str) -> list:
        now, window, limit = int(args[0]), int(args[1]), int(args[2])
        entries = [t for t in self.windows.get(key, []) if t > now - window]
        allowed = 0
        if len(entries) < limit:
            entries.append(now)
            allowed = 1
        self.windows[key] = entries
        return [allowed, len(entries), str(min(entries)) if entries else "-1"]

    async def delete(self, key: str) -> int:
        return 1


class _Fetcher:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def __call__(self, url: str) -> FetchResult:
        self.calls.append(url)
        return FetchResult(html=PAGE_HTML, status_code=200, final_url=url, error=None)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        groq_api_key="gsk_test",
        rate_limit_requests=3,
        rate_limit_window_seconds=60,
        metrics_enabled=True,
    )


@pytest.fixture
def fetcher() -> _Fetcher:
    return _Fetcher()


@pytest.fixture
def app(settings: Settings, memory_store, fetcher: _Fetcher) -> FastAPI:
    application = create_app(settings)
    application.state.http_client = MagicMock(spec=httpx.AsyncClient)
    application.state.scrape_service = ScrapeService(
        cache=ScrapeCache(memory_store), fetcher=fetcher
    )
    application.state.rate_limiter = RateLimiter(
        _WindowRedis(),  # type: ignore[arg-type]
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(return_value=True)
    application.state.redis = redis_client
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# POST /api/chat
# ---------------------------------------------------------------------------


class TestChatRoute:
    async def test_prompt_grounded_on_page_content(
        self, client: AsyncClient, fetcher: _Fetcher
    ) -> None:
        with patch(
            "grounded_chat.api.routes.chat.chat_completion",
            new=AsyncMock(return_value="Grounded answer"),
        ) as mock_llm:
            response = await client.post(
                "/api/chat",
                json={
                    "message": f"{PAGE_URL} extra words",
                    "messages": [{"role": "assistant", "content": "Hi!"}],
                },
            )

        assert response.status_code == 200
        assert response.json() == {"message": "Grounded answer"}
        assert fetcher.calls == [PAGE_URL]

        messages: list[dict[str, Any]] = mock_llm.await_args.args[1]
        assert messages[0] == {"role": "assistant", "content": "Hi!"}
        prompt = messages[-1]["content"]
        assert messages[-1]["role"] == "user"
        assert '"extra words"' in prompt
        assert "TH1Para text" in prompt
        assert PAGE_URL in prompt
        assert mock_llm.await_args.kwargs["api_key"] == "gsk_test"

    async def test_message_without_url_skips_scraping(
        self, client: AsyncClient, fetcher: _Fetcher
    ) -> None:
        with patch(
            "grounded_chat.api.routes.chat.chat_completion",
            new=AsyncMock(return_value="Please share a link."),
        ):
            response = await client.post("/api/chat", json={"message": "hello there"})

        assert response.status_code == 200
        assert fetcher.calls == []

    async def test_llm_rate_limited_returns_503(self, client: AsyncClient) -> None:
        with patch(
            "grounded_chat.api.routes.chat.chat_completion",
            new=AsyncMock(side_effect=ChatRateLimitError("busy", retry_after=7)),
        ):
            response = await client.post("/api/chat", json={"message": "hello"})

        assert response.status_code == 503
        assert response.headers["retry-after"] == "7"

    async def test_llm_failure_returns_502(self, client: AsyncClient) -> None:
        with patch(
            "grounded_chat.api.routes.chat.chat_completion",
            new=AsyncMock(side_effect=ChatCompletionError("boom")),
        ):
            response = await client.post("/api/chat", json={"message": "hello"})

        assert response.status_code == 502

    async def test_empty_message_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/chat", json={"message": ""})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# POST /api/scrape
# ---------------------------------------------------------------------------


class TestScrapeRoute:
    async def test_returns_camel_case_content(self, client: AsyncClient) -> None:
        response = await client.post("/api/scrape", json={"url": PAGE_URL})

        assert response.status_code == 200
        body = response.json()
        assert body["url"] == PAGE_URL
        assert body["title"] == "T"
        assert body["headings"] == {"h1": "H1", "h2": ""}
        assert body["metaDescription"] == ""
        assert body["content"] == "TH1Para text"
        assert body["error"] is None
        assert isinstance(body["cachedAt"], int)

    async def test_second_call_served_from_cache(
        self, client: AsyncClient, fetcher: _Fetcher
    ) -> None:
        first = await client.post("/api/scrape", json={"url": PAGE_URL})
        second = await client.post("/api/scrape", json={"url": PAGE_URL})

        assert len(fetcher.calls) == 1
        assert first.json() == second.json()

    async def test_url_extracted_from_free_text(self, client: AsyncClient) -> None:
        response = await client.post("/api/scrape", json={"url": f"read {PAGE_URL} please"})

        assert response.json()["url"] == PAGE_URL

    async def test_input_without_url_is_422(self, client: AsyncClient) -> None:
        response = await client.post("/api/scrape", json={"url": "no link here"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Rate limiting middleware
# ---------------------------------------------------------------------------


class TestRateLimitMiddleware:
    async def test_admitted_response_carries_headers(self, client: AsyncClient) -> None:
        response = await client.post("/api/scrape", json={"url": PAGE_URL})

        assert response.headers["x-ratelimit-limit"] == "3"
        assert response.headers["x-ratelimit-remaining"] == "2"
        assert int(response.headers["x-ratelimit-reset"]) > 0

    async def test_request_over_limit_is_429(
        self, client: AsyncClient, fetcher: _Fetcher
    ) -> None:
        for _ in range(3):
            assert (await client.post("/api/scrape", json={"url": PAGE_URL})).status_code == 200

        denied = await client.post("/api/scrape", json={"url": PAGE_URL})

        assert denied.status_code == 429
        assert denied.json() == {"error": "Too many requests"}
        assert denied.headers["x-ratelimit-remaining"] == "0"
        assert "x-ratelimit-reset" in denied.headers
        assert len(fetcher.calls) == 1

    async def test_forwarded_for_ignored_by_default(self, client: AsyncClient) -> None:
        for _ in range(3):
            await client.post("/api/scrape", json={"url": PAGE_URL})

        spoofed = await client.post(
            "/api/scrape", json={"url": PAGE_URL}, headers={"X-Forwarded-For": "203.0.113.9"}
        )

        assert spoofed.status_code == 429

    async def test_forwarded_for_identities_have_separate_budgets(
        self, app: FastAPI, settings: Settings, client: AsyncClient
    ) -> None:
        app.state.settings = settings.model_copy(
            update={"rate_limit_trust_forwarded_for": True}
        )
        for _ in range(3):
            await client.post(
                "/api/scrape", json={"url": PAGE_URL}, headers={"X-Forwarded-For": "10.0.0.1"}
            )

        other = await client.post(
            "/api/scrape",
            json={"url": PAGE_URL},
            headers={"X-Forwarded-For": "10.0.0.2, 10.0.0.1"},
        )

        assert other.status_code == 200

    async def test_health_paths_exempt(self, client: AsyncClient) -> None:
        for _ in range(5):
            response = await client.get("/health")
            assert response.status_code == 200
            assert "x-ratelimit-limit" not in response.headers

    async def test_limiter_outage_fails_open(self, app: FastAPI, client: AsyncClient) -> None:
        broken = MagicMock()
        broken.script_load = AsyncMock(side_effect=ConnectionError("down"))
        app.state.rate_limiter = RateLimiter(broken, limit=1, window_seconds=60)

        for _ in range(3):
            response = await client.post("/api/scrape", json={"url": PAGE_URL})
            assert response.status_code == 200


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


class TestSystemRoutes:
    async def test_liveness(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_request_id_header(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.headers.get("x-request-id")

    async def test_api_health_ok(self, client: AsyncClient) -> None:
        response = await client.get("/api/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "ok"
        assert body["redis"] == "ok"
        assert "timestamp" in body

    async def test_api_health_degraded(self, app: FastAPI, client: AsyncClient) -> None:
        app.state.redis.ping = AsyncMock(side_effect=ConnectionError("down"))

        response = await client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["redis"] == "error"

    async def test_metrics_exposed(self, client: AsyncClient) -> None:
        await client.get("/health")
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    async def test_metrics_disabled(self) -> None:
        application = create_app(Settings(metrics_enabled=False))
        async with AsyncClient(
            transport=ASGITransport(app=application), base_url="http://test"
        ) as ac:
            response = await ac.get("/metrics")

        assert response.status_code == 404
