"""Rate-limit middleware and client identity resolution.

Every request except the health, metrics and docs paths is admitted through
the :class:`~grounded_chat.core.rate_limiter.RateLimiter` before any route
code runs.  A denied request is answered with HTTP 429 straight from the
middleware, so neither the scraper nor the language model is touched.
Admitted responses carry the same ``x-RateLimit-*`` headers with the
post-admission values.
"""

from __future__ import annotations

from typing import Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi.util import get_remote_address

logger = structlog.get_logger(__name__)

#: Paths that are never rate limited.
EXEMPT_PATHS: frozenset[str] = frozenset(
    {"/health", "/api/health", "/metrics", "/docs", "/redoc", "/openapi.json"}
)


def client_identity(
    request: Request,
    *,
    trust_forwarded_for: bool,
    fallback: str,
) -> str:
    """Return the rate-limit identity for *request*.

    Order: first ``X-Forwarded-For`` entry (if trusted), then the socket peer
    address, then *fallback*.  Every request that reaches the fallback shares
    one budget.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is None or not request.client.host:
        return fallback
    return get_remote_address(request)


async def rate_limit_middleware(request: Request, call_next: Callable) -> Response:
    """Admit or reject *request* and decorate the response with limit headers."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    settings = request.app.state.settings
    identity = client_identity(
        request,
        trust_forwarded_for=settings.rate_limit_trust_forwarded_for,
        fallback=settings.rate_limit_fallback_identity,
    )
    decision = await limiter.admit(identity)

    if not decision.allowed:
        logger.warning("rate_limited", identity=identity, reset_at=decision.reset_at)
        return JSONResponse(
            {"error": "Too many requests"},
            status_code=429,
            headers=decision.headers(),
        )

    response = await call_next(request)
    for name, value in decision.headers().items():
        response.headers[name] = value
    return response
