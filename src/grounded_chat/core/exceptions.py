"""Application-wide exception hierarchy for Grounded Chat.

All custom exceptions subclass ``GroundedChatError``, enabling consistent
error handling and structured logging across the application.

Fetch failures and rate-limit denials are *not* exceptions: they are normal
outcomes carried on :class:`~grounded_chat.core.schemas.ScrapedContent` and
:class:`~grounded_chat.core.rate_limiter.RateDecision` respectively.

Hierarchy::

    GroundedChatError
    ├── CacheEntryCorruptError
    └── ChatCompletionError
        ├── ChatRateLimitError      (retry_after: float)
        └── ChatAuthError
"""

from __future__ import annotations


class GroundedChatError(Exception):
    """Base class for all Grounded Chat exceptions."""


# ---------------------------------------------------------------------------
# Cache exceptions
# ---------------------------------------------------------------------------


class CacheEntryCorruptError(GroundedChatError):
    """Raised when a cached scrape result cannot be decoded or fails validation.

    Never escapes :mod:`grounded_chat.scraper.cache`; the lookup converts it
    into a ``corrupt`` outcome and deletes the offending key.

    Args:
        key: The cache key holding the corrupt value.
        reason: Short description of why decoding failed.
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Corrupt cache entry '{key}': {reason}")
        self.key = key
        self.reason = reason


# ---------------------------------------------------------------------------
# LLM exceptions
# ---------------------------------------------------------------------------


class ChatCompletionError(GroundedChatError):
    """Raised when the language model call fails.

    Args:
        message: Human-readable description of the failure.
        provider: Name of the LLM provider (e.g. ``"groq"``).
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class ChatRateLimitError(ChatCompletionError):
    """Raised when the LLM provider answers HTTP 429.

    Args:
        message: Human-readable description of the rate limit.
        retry_after: Seconds to wait before retrying. Defaults to 60.
        provider: Name of the LLM provider.
    """

    def __init__(
        self,
        message: str,
        retry_after: float = 60.0,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class ChatAuthError(ChatCompletionError):
    """Raised when the LLM provider rejects the configured API key."""
