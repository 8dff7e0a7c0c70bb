"""Shared pytest fixtures for Grounded Chat tests.

Fixture summary
---------------
memory_store: in-memory KeyValueStore that records every call.
scrape_cache: ScrapeCache over ``memory_store``.
make_content: factory for valid ScrapedContent values.
article_html: a small article page exercising every extraction source.

No test requires a live Redis, network access or a Groq API key: the store is
faked in memory, page fetches are stubbed or mocked with respx, and the rate
limiter runs against a mocked ``evalsha``.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set before any application module is imported so Settings() never picks up
# a developer's real .env values during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "REDIS_URL": "redis://localhost:6379/15",
    "GROQ_API_KEY": "test-groq-key",
    "LOG_LEVEL": "INFO",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

from grounded_chat.config.settings import get_settings  # noqa: E402
from grounded_chat.core.schemas import Headings, ScrapedContent  # noqa: E402
from grounded_chat.scraper.cache import ScrapeCache  # noqa: E402

get_settings.cache_clear()


# ---------------------------------------------------------------------------
# In-memory key-value store
# ---------------------------------------------------------------------------


class MemoryStore:
    """Dict-backed stand-in for :class:`RedisKeyValueStore`.

    TTLs are recorded but never enforced.  Set ``fail_on`` to an operation
    name (``"get"``, ``"set"``, ``"delete"``) to make that operation raise
    ``ConnectionError``, simulating a Redis outage.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()

    def _record(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if op in self.fail_on:
            raise ConnectionError(f"store unavailable during {op}")

    async def get(self, key: str) -> str | None:
        self._record("get", key)
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._record("set", key)
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self._record("delete", key)
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)


@pytest.fixture
def memory_store() -> MemoryStore:
    """Return an empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def scrape_cache(memory_store: MemoryStore) -> ScrapeCache:
    """Return a ScrapeCache with default TTL and size limit over ``memory_store``."""
    return ScrapeCache(memory_store)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def make_content() -> Callable[..., ScrapedContent]:
    """Return a factory building successful ScrapedContent values."""

    def _factory(url: str = "https://example.com/article", **overrides: Any) -> ScrapedContent:
        fields: dict[str, Any] = {
            "url": url,
            "title": "Example",
            "headings": Headings(h1="Heading", h2=""),
            "meta_description": "A page",
            "content": "Example A page Heading Body text",
            "error": None,
        }
        fields.update(overrides)
        return ScrapedContent(**fields)

    return _factory


@pytest.fixture
def article_html() -> str:
    """Return a page with a title, description, headings, prose and a script."""
    return (
        "<html><head><title>Example</title>"
        '<meta name="description" content="A page"></head>'
        "<body><script>var x = 1;</script>"
        "<h1>Heading</h1><p>Body\n text</p></body></html>"
    )
