"""Pydantic schemas shared by the scraper, the cache and the HTTP API.

``ScrapedContent`` is both the public result of resolving a URL and the
persisted cache value.  Its JSON form uses camelCase keys
(``metaDescription``, ``cachedAt``) so entries written by other clients of
the same Redis keyspace stay readable.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Headings(BaseModel):
    """Space-joined text of every ``h1`` and every ``h2`` element on a page."""

    model_config = ConfigDict(strict=True)

    h1: str
    h2: str


class ScrapedContent(BaseModel):
    """Result of resolving a URL into bounded, cleaned page text.

    All fields except ``cached_at`` are required with no defaults, so
    validating a cached JSON document doubles as the structural check for
    corrupt entries.  ``strict`` mode stops pydantic from coercing e.g. a
    numeric ``title`` into a string.  ``cached_at`` alone is lax, so an integral
    float such as ``1.7e12`` written by another client still validates.

    Attributes:
        url: The URL that was requested.
        title: Normalised ``<title>`` text.
        headings: Normalised ``h1`` / ``h2`` text.
        meta_description: Normalised ``meta[name=description]`` content.
        content: Normalised prose, capped at the configured character limit.
        error: Non-``None`` when the fetch or parse failed.  All text fields
            are empty strings in that case.
        cached_at: Epoch milliseconds at which the value was written to the
            cache, or ``None`` if it was never persisted.
    """

    model_config = ConfigDict(populate_by_name=True, strict=True)

    url: str
    title: str
    headings: Headings
    meta_description: str = Field(alias="metaDescription")
    content: str
    error: str | None
    cached_at: int | None = Field(default=None, alias="cachedAt", strict=False)

    @classmethod
    def failed(cls, url: str, error: str) -> ScrapedContent:
        """Build the error-flagged result for *url* with every text field empty."""
        return cls(
            url=url,
            title="",
            headings=Headings(h1="", h2=""),
            meta_description="",
            content="",
            error=error,
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase dict form, omitting ``cachedAt`` when unset."""
        payload = self.model_dump(by_alias=True)
        if self.cached_at is None:
            payload.pop("cachedAt")
        return payload

    def to_json(self) -> str:
        """Return the compact JSON form stored in the cache."""
        exclude = {"cached_at"} if self.cached_at is None else None
        return self.model_dump_json(by_alias=True, exclude=exclude)


# ---------------------------------------------------------------------------
# Chat API
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """One turn of the conversation history sent by the front-end."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``.

    Attributes:
        message: The new user message; may contain a URL to ground on.
        messages: Prior conversation turns, oldest first.
    """

    message: str = Field(min_length=1)
    messages: list[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Body returned by ``POST /api/chat``."""

    message: str


class ScrapeRequest(BaseModel):
    """Body of ``POST /api/scrape``: free text or a bare URL to resolve."""

    url: str = Field(min_length=1)
