"""Async HTTP page fetcher.

Uses ``httpx`` for all requests.  Every failure mode (network error, timeout,
non-2xx status, binary content-type, undecodable body) is reported on the
returned :class:`FetchResult` instead of being raised, so one bad URL cannot
abort the chat turn that mentioned it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from grounded_chat.scraper.config import BINARY_CONTENT_TYPES, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class FetchResult:
    """Result of a single HTTP fetch attempt.

    Attributes:
        html: Response body, or ``None`` if the fetch failed.
        status_code: HTTP status code, or ``None`` on network error.
        final_url: URL after following redirects.
        error: Human-readable error description, or ``None`` on success.
    """

    html: str | None
    status_code: int | None
    final_url: str | None
    error: str | None


# ---------------------------------------------------------------------------
# Binary content-type check
# ---------------------------------------------------------------------------


def _is_binary_content_type(content_type: str) -> bool:
    """Return ``True`` if the Content-Type indicates a non-text binary resource."""
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


# ---------------------------------------------------------------------------
# Public fetch function
# ---------------------------------------------------------------------------


async def fetch_url(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float = DEFAULT_TIMEOUT,
) -> FetchResult:
    """Issue a plain ``GET`` for *url* and return the body on success.

    No custom headers or credentials are sent.  Redirects are followed.

    Args:
        url: Target URL.
        client: Shared :class:`httpx.AsyncClient` owned by the application.
        timeout: Request timeout in seconds.

    Returns:
        A :class:`FetchResult`; ``error`` is set for every failure.
    """
    try:
        response = await client.get(url, timeout=timeout, follow_redirects=True)
    except httpx.TimeoutException:
        logger.warning("scraper: timeout fetching %s", url)
        return FetchResult(html=None, status_code=None, final_url=url, error="timeout")
    except httpx.TooManyRedirects:
        logger.warning("scraper: too many redirects for %s", url)
        return FetchResult(
            html=None, status_code=None, final_url=url, error="too many redirects"
        )
    except httpx.InvalidURL as exc:
        logger.warning("scraper: invalid URL %s: %s", url, exc)
        return FetchResult(
            html=None, status_code=None, final_url=url, error=f"invalid URL: {exc}"
        )
    except httpx.RequestError as exc:
        logger.warning("scraper: request error for %s: %s", url, exc)
        return FetchResult(
            html=None, status_code=None, final_url=url, error=f"request error: {exc}"
        )

    final_url = str(response.url)

    if not response.is_success:
        logger.info("scraper: HTTP %d for %s", response.status_code, url)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"HTTP {response.status_code}",
        )

    content_type = response.headers.get("content-type", "")
    if _is_binary_content_type(content_type):
        logger.info("scraper: skipping binary content-type '%s' for %s", content_type, url)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"binary content-type: {content_type}",
        )

    try:
        html = response.text
    except Exception as exc:  # noqa: BLE001
        logger.warning("scraper: decode error for %s: %s", url, exc)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"decode error: {exc}",
        )

    return FetchResult(
        html=html,
        status_code=response.status_code,
        final_url=final_url,
        error=None,
    )
