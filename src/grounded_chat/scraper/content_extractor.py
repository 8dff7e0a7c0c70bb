"""Bounded plain-text extraction from raw HTML.

Extraction reads a fixed precedence of sources rather than guessing at the
"main" article: title, meta description, ``h1``, ``h2``, then the prose
categories listed in :data:`~grounded_chat.scraper.config.CONTENT_SELECTORS`.
The ordering logic works against the small :class:`HtmlDocument` interface;
:class:`SoupDocument` is the BeautifulSoup-backed implementation used in
production.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from bs4 import BeautifulSoup

from grounded_chat.core.schemas import Headings, ScrapedContent
from grounded_chat.scraper.config import (
    CONTENT_SELECTORS,
    MAX_CONTENT_CHARS,
    STRIPPED_TAGS,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Document capability interface
# ---------------------------------------------------------------------------


class HtmlDocument(Protocol):
    """Minimal DOM capabilities the extractor relies on."""

    def remove_elements(self, *tags: str) -> None:
        """Delete every element with one of the given tag names, children included."""

    def texts(self, selector: str) -> list[str]:
        """Return the text of every element matching the CSS *selector*, in document order."""

    def attribute(self, selector: str, name: str) -> str | None:
        """Return attribute *name* of the first element matching *selector*."""


class SoupDocument:
    """:class:`HtmlDocument` backed by BeautifulSoup and soupsieve selectors."""

    def __init__(self, html: str) -> None:
        self._soup = BeautifulSoup(html, "html.parser")

    def remove_elements(self, *tags: str) -> None:
        for element in self._soup.find_all(list(tags)):
            element.decompose()

    def texts(self, selector: str) -> list[str]:
        return [element.get_text() for element in self._soup.select(selector)]

    def attribute(self, selector: str, name: str) -> str | None:
        element = self._soup.select_one(selector)
        if element is None:
            return None
        value = element.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def clean_text(text: str) -> str:
    """Collapse whitespace runs to single spaces, drop newlines and trim."""
    return _WHITESPACE_RE.sub(" ", text).replace("\n", "").strip()


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_from_document(
    document: HtmlDocument,
    url: str,
    *,
    max_chars: int = MAX_CONTENT_CHARS,
) -> ScrapedContent:
    """Derive a :class:`ScrapedContent` from an already-parsed document.

    The document is mutated: non-content elements are removed first so that
    none of the later reads can see script or style payloads.

    Args:
        document: Parsed page.
        url: The requested URL, copied onto the result.
        max_chars: Cap applied to the normalised prose.

    Returns:
        A result with ``error=None`` and ``cached_at=None``.
    """
    document.remove_elements(*STRIPPED_TAGS)

    title = "".join(document.texts("title"))
    meta_description = document.attribute('meta[name="description"]', "content") or ""
    h1 = " ".join(document.texts("h1"))
    h2 = " ".join(document.texts("h2"))

    prose = [" ".join(document.texts(selector)) for selector in CONTENT_SELECTORS]

    combined = "".join([title, meta_description, h1, h2, *prose])
    content = clean_text(combined)[:max_chars]

    return ScrapedContent(
        url=url,
        title=clean_text(title),
        headings=Headings(h1=clean_text(h1), h2=clean_text(h2)),
        meta_description=clean_text(meta_description),
        content=content,
        error=None,
    )


def extract_content(
    html: str,
    url: str,
    *,
    max_chars: int = MAX_CONTENT_CHARS,
) -> ScrapedContent:
    """Parse *html* and extract bounded page text.

    Never raises: a document that cannot be parsed yields an error-flagged
    result with every text field empty.

    Args:
        html: Raw HTML string (may be partial or malformed).
        url: The requested URL, copied onto the result.
        max_chars: Cap applied to the normalised prose.

    Returns:
        A :class:`ScrapedContent` without ``cached_at``.
    """
    try:
        return extract_from_document(SoupDocument(html), url, max_chars=max_chars)
    except Exception as exc:  # noqa: BLE001
        logger.warning("scraper: extraction failed for %s: %s", url, exc)
        return ScrapedContent.failed(url, f"parse error: {exc}")
