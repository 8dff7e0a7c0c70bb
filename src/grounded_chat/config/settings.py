"""Application settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.
API keys and connection URLs are accessed exclusively through this module -
never call ``os.getenv`` directly elsewhere in the codebase.

Usage::

    from grounded_chat.config.settings import get_settings

    settings = get_settings()
    redis_url = settings.redis_url
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration backed by environment variables and an optional .env file.

    Every field has a development default so the service starts against a
    local Redis without any configuration.  ``groq_api_key`` must be set for
    the chat endpoint to reach the language model.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    app_name: str = "Grounded Chat"
    """Human-readable application name shown in the OpenAPI docs."""

    debug: bool = False
    """Enable FastAPI debug mode and verbose error responses.  Never True in production."""

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    allowed_origins: list[str] = ["http://localhost:3000"]
    """Origins permitted by the CORS middleware (the chat front-end)."""

    # ------------------------------------------------------------------
    # Redis
    # ------------------------------------------------------------------

    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL holding the scrape cache and rate-limit windows."""

    # ------------------------------------------------------------------
    # Language model (Groq, OpenAI-compatible API)
    # ------------------------------------------------------------------

    groq_api_key: str = ""
    """Bearer token for the Groq API.  Empty disables the chat endpoint (HTTP 502)."""

    groq_api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    """Chat completions endpoint."""

    groq_model: str = "llama-3.1-8b-instant"
    """Model identifier passed in every completion request."""

    llm_timeout: float = 60.0
    """Seconds to wait for a completion before giving up."""

    # ------------------------------------------------------------------
    # Page fetching
    # ------------------------------------------------------------------

    fetch_timeout: float = 30.0
    """Seconds to wait for a page fetch.  A hung fetch only ties up its own request."""

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_requests: int = 10
    """Requests admitted per client identity within one sliding window."""

    rate_limit_window_seconds: int = 60
    """Length of the sliding window in seconds."""

    rate_limit_trust_forwarded_for: bool = False
    """Use the first ``X-Forwarded-For`` entry as the client identity.

    Only enable behind a proxy that overwrites the header, otherwise clients
    can pick their own identity.
    """

    rate_limit_fallback_identity: str = "127.0.0.1"
    """Identity used when no client address is available.

    All such requests share one rate budget.
    """

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    metrics_enabled: bool = True
    """Expose Prometheus metrics at ``GET /metrics``."""


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Uses ``functools.lru_cache`` so that Pydantic Settings reads the environment
    and .env file exactly once per process lifetime.  In tests, call
    ``get_settings.cache_clear()`` after patching environment variables.

    Returns:
        Settings: The validated settings object.
    """
    return Settings()
