"""Constants and tuning parameters for page fetching, extraction and caching."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------

#: Default HTTP request timeout in seconds.  Overridden by settings.
DEFAULT_TIMEOUT: float = 30.0

#: Content-Type prefixes that indicate binary/non-text resources that should
#: be reported as fetch failures without attempting extraction.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "application/x-executable",
        "application/vnd.",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)

#: Error string placed on a ScrapedContent when the page could not be fetched.
FETCH_ERROR_MESSAGE: str = "Error in scraping URL"

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

#: Maximum number of characters of normalised prose kept per page.
MAX_CONTENT_CHARS: int = 10_000

#: Elements removed before any text is read.
STRIPPED_TAGS: tuple[str, ...] = ("script", "style", "noscript", "iframe")

#: Prose sources in precedence order.  Each selector's matches are joined with
#: a space; the categories themselves are concatenated without a separator.
CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    "main",
    '[class*="content"], [id*="content"]',
    "p",
    "li",
)

# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

#: Redis key namespace for scrape results.
CACHE_KEY_PREFIX: str = "scrape:"

#: URLs are truncated to this many characters when deriving the cache key.
CACHE_KEY_MAX_URL_CHARS: int = 200

#: Store-level TTL applied on every write (7 days).
CACHE_TTL_SECONDS: int = 7 * 24 * 60 * 60

#: Serialised entries above this size (UTF-8 bytes) are never written.
MAX_CACHE_ENTRY_BYTES: int = 1_024_000
