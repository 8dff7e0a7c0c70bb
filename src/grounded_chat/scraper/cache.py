"""Scrape result cache: key derivation, validated reads and guarded writes.

Reads never raise.  A stored value that is not JSON, or that does not match
the :class:`~grounded_chat.core.schemas.ScrapedContent` shape, is deleted and
reported as ``corrupt`` so a single poison entry cannot block every later
read of the same URL.  Store outages degrade to ``unavailable`` on read and
to a skipped write on write.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Literal

from pydantic import ValidationError

from grounded_chat.api.metrics import scrape_cache_lookups_total, scrape_cache_writes_total
from grounded_chat.core.exceptions import CacheEntryCorruptError
from grounded_chat.core.schemas import ScrapedContent
from grounded_chat.scraper.cache_store import KeyValueStore
from grounded_chat.scraper.config import (
    CACHE_KEY_MAX_URL_CHARS,
    CACHE_KEY_PREFIX,
    CACHE_TTL_SECONDS,
    MAX_CACHE_ENTRY_BYTES,
)

logger = logging.getLogger(__name__)

LookupOutcome = Literal["hit", "miss", "corrupt", "unavailable"]


def cache_key(url: str) -> str:
    """Return the store key for *url*: ``scrape:`` plus its first 200 characters."""
    return f"{CACHE_KEY_PREFIX}{url[:CACHE_KEY_MAX_URL_CHARS]}"


def decode_entry(key: str, raw: str) -> ScrapedContent:
    """Deserialise and structurally validate a cached value.

    Raises:
        CacheEntryCorruptError: If *raw* is not JSON or fails validation.
    """
    try:
        return ScrapedContent.model_validate_json(raw)
    except ValidationError as exc:
        reason = "invalid JSON" if _is_json_error(exc) else "unexpected shape"
        raise CacheEntryCorruptError(key, f"{reason}: {exc.error_count()} error(s)") from exc


def _is_json_error(exc: ValidationError) -> bool:
    return any(error["type"] == "json_invalid" for error in exc.errors())


@dataclass(frozen=True)
class CacheLookup:
    """Typed outcome of a cache read.

    Attributes:
        outcome: ``"hit"``, ``"miss"``, ``"corrupt"`` (entry deleted) or
            ``"unavailable"`` (store error).
        content: The cached value on a hit, else ``None``.
    """

    outcome: LookupOutcome
    content: ScrapedContent | None = None

    @property
    def hit(self) -> bool:
        return self.outcome == "hit" and self.content is not None


@dataclass
class ScrapeCache:
    """Scrape-result cache over a :class:`KeyValueStore`.

    Attributes:
        store: The key-value collaborator (Redis in production).
        ttl_seconds: TTL applied to every write.
        max_entry_bytes: Serialised entries larger than this are not written.
    """

    store: KeyValueStore
    ttl_seconds: int = CACHE_TTL_SECONDS
    max_entry_bytes: int = MAX_CACHE_ENTRY_BYTES

    async def lookup(self, url: str) -> CacheLookup:
        """Return the cached result for *url*, if a valid one exists."""
        key = cache_key(url)
        try:
            raw = await self.store.get(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("scraper: cache read failed for %s: %s", key, exc)
            scrape_cache_lookups_total.labels(outcome="unavailable").inc()
            return CacheLookup("unavailable")

        if not raw:
            logger.info("scraper: cache miss for %s", url)
            scrape_cache_lookups_total.labels(outcome="miss").inc()
            return CacheLookup("miss")

        try:
            content = decode_entry(key, raw)
        except CacheEntryCorruptError as exc:
            logger.warning("scraper: %s; deleting", exc)
            await self._discard(key)
            scrape_cache_lookups_total.labels(outcome="corrupt").inc()
            return CacheLookup("corrupt")

        if content.url != url:
            # Two URLs sharing the truncated key prefix.
            logger.info(
                "scraper: cache key %s holds %s, not %s; treating as miss",
                key,
                content.url,
                url,
            )
            scrape_cache_lookups_total.labels(outcome="miss").inc()
            return CacheLookup("miss")

        age_minutes = round((_now_ms() - (content.cached_at or 0)) / 1000 / 60)
        logger.info("scraper: cache hit for %s (age %d min)", url, age_minutes)
        scrape_cache_lookups_total.labels(outcome="hit").inc()
        return CacheLookup("hit", content)

    async def save(self, url: str, content: ScrapedContent) -> ScrapedContent:
        """Persist *content* under *url*'s key when it is cacheable.

        Error-flagged and oversize results are never written.  Write failures
        are logged and swallowed.

        Returns:
            The persisted copy (with ``cached_at`` set) when the write
            succeeded, otherwise *content* unchanged.
        """
        if content.error is not None:
            logger.error("scraper: refusing to cache error result for %s", url)
            scrape_cache_writes_total.labels(outcome="rejected").inc()
            return content

        key = cache_key(url)
        persisted = content.model_copy(update={"cached_at": _now_ms()})
        serialized = persisted.to_json()
        size = len(serialized.encode("utf-8"))

        if size > self.max_entry_bytes:
            logger.warning(
                "scraper: content too large to cache for %s (%d bytes)", url, size
            )
            scrape_cache_writes_total.labels(outcome="oversize").inc()
            return content

        try:
            await self.store.set(key, serialized, self.ttl_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.warning("scraper: cache write failed for %s: %s", key, exc)
            scrape_cache_writes_total.labels(outcome="error").inc()
            return content

        logger.info(
            "scraper: cached %s (%d bytes, TTL %ds)", url, size, self.ttl_seconds
        )
        scrape_cache_writes_total.labels(outcome="stored").inc()
        return persisted

    async def _discard(self, key: str) -> None:
        try:
            await self.store.delete(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("scraper: failed to delete corrupt entry %s: %s", key, exc)


def _now_ms() -> int:
    return int(time.time() * 1000)
