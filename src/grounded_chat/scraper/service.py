"""Scrape orchestration: cache first, then fetch, extract and persist.

Typical usage::

    service = ScrapeService(
        cache=ScrapeCache(RedisKeyValueStore(redis_client)),
        client=http_client,
    )
    result = await service.resolve("https://example.com/article")
    if result.error is None:
        ...

``resolve`` never raises.  Every failure ends in either a cache bypass or an
error-flagged :class:`~grounded_chat.core.schemas.ScrapedContent`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from grounded_chat.api.metrics import scrapes_total
from grounded_chat.core.schemas import ScrapedContent
from grounded_chat.scraper.cache import ScrapeCache
from grounded_chat.scraper.config import (
    DEFAULT_TIMEOUT,
    FETCH_ERROR_MESSAGE,
    MAX_CONTENT_CHARS,
)
from grounded_chat.scraper.content_extractor import extract_content
from grounded_chat.scraper.http_fetcher import FetchResult, fetch_url

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[FetchResult]]
"""Signature of the fetch collaborator: URL in, :class:`FetchResult` out."""


@dataclass
class ScrapeService:
    """Resolves URLs into :class:`ScrapedContent`, backed by :class:`ScrapeCache`.

    Attributes:
        cache: The scrape cache.
        client: Shared HTTP client used by the default fetcher.
        timeout: Page fetch timeout in seconds.
        max_chars: Cap on extracted prose.
        fetcher: Optional replacement for :func:`fetch_url`; when ``None`` the
            service fetches with *client*.
    """

    cache: ScrapeCache
    client: httpx.AsyncClient | None = None
    timeout: float = DEFAULT_TIMEOUT
    max_chars: int = MAX_CONTENT_CHARS
    fetcher: Fetcher | None = None

    def __post_init__(self) -> None:
        if self.fetcher is None and self.client is None:
            raise ValueError("ScrapeService needs either an HTTP client or a fetcher")

    async def _fetch(self, url: str) -> FetchResult:
        if self.fetcher is not None:
            return await self.fetcher(url)
        return await fetch_url(url, client=self.client, timeout=self.timeout)  # type: ignore[arg-type]

    async def resolve(self, url: str) -> ScrapedContent:
        """Return page content for *url*, serving from cache when possible.

        A valid cache entry is returned as-is with no network call, whatever
        its age; expiry is left to the store's TTL.
        """
        logger.info("scraper: resolving %s", url)

        lookup = await self.cache.lookup(url)
        if lookup.hit and lookup.content is not None:
            scrapes_total.labels(status="cached").inc()
            return lookup.content

        try:
            fetched = await self._fetch(url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("scraper: fetcher raised for %s: %s", url, exc)
            fetched = FetchResult(html=None, status_code=None, final_url=url, error=str(exc))

        if fetched.error is not None or fetched.html is None:
            logger.info("scraper: fetch failed for %s: %s", url, fetched.error)
            scrapes_total.labels(status="error").inc()
            return ScrapedContent.failed(url, FETCH_ERROR_MESSAGE)

        result = extract_content(fetched.html, url, max_chars=self.max_chars)
        if result.error is not None:
            scrapes_total.labels(status="error").inc()
            return result

        logger.info("scraper: extracted %d chars from %s", len(result.content), url)
        scrapes_total.labels(status="fetched").inc()
        return await self.cache.save(url, result)
