"""FastAPI application factory and entry point.

Creates the application instance, registers middleware (request logging,
metrics, rate limiting) and mounts the route routers.  Outbound clients
(Redis, httpx) are owned by the lifespan and exposed on ``app.state``.

Usage::

    # Development server (from project root)
    uvicorn grounded_chat.api.main:app --reload
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import httpx
import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grounded_chat.api.dependencies import (
    create_rate_limiter,
    create_redis_client,
    create_scrape_service,
)
from grounded_chat.api.metrics import (
    get_metrics_response,
    http_request_duration_seconds,
    http_requests_total,
)
from grounded_chat.api.middleware import rate_limit_middleware
from grounded_chat.config.settings import Settings, get_settings
from grounded_chat.core.logging_config import configure_logging, request_id_var

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Open the shared Redis and HTTP clients and wire the services to them."""
    settings: Settings = application.state.settings
    redis_client = create_redis_client(settings)
    http_client = httpx.AsyncClient()

    application.state.redis = redis_client
    application.state.http_client = http_client
    application.state.scrape_service = create_scrape_service(settings, redis_client, http_client)
    application.state.rate_limiter = create_rate_limiter(settings, redis_client)

    logger.info(
        "application_startup",
        app_name=settings.app_name,
        debug=settings.debug,
        log_level=settings.log_level,
    )
    try:
        yield
    finally:
        await http_client.aclose()
        await redis_client.aclose()
        logger.info("application_shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Args:
        settings: Explicit settings, mainly for tests.  Defaults to
            :func:`~grounded_chat.config.settings.get_settings`.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description="Chat endpoint grounded on on-demand, cached web page extraction.",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.state.settings = settings

    # ---- Middleware --------------------------------------------------------
    # Registration order is inside-out: the rate limiter runs innermost so the
    # logging middleware also records 429 responses.

    application.middleware("http")(rate_limit_middleware)

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with a correlation ID, status and duration."""
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed = time.perf_counter() - start
            status_code = getattr(response, "status_code", 500)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )
            http_requests_total.labels(
                method=request.method, path=request.url.path, status=str(status_code)
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method, path=request.url.path
            ).observe(elapsed)

        response.headers["X-Request-ID"] = request_id
        return response

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-RateLimit-Limit", "x-RateLimit-Remaining", "x-RateLimit-Reset"],
    )

    # ---- Routers -----------------------------------------------------------

    from grounded_chat.api.routes import chat, health as health_routes  # noqa: PLC0415

    application.include_router(health_routes.router)
    application.include_router(chat.router)

    # ---- System endpoints --------------------------------------------------

    @application.get("/health", tags=["system"])
    async def health() -> JSONResponse:
        """Return a minimal liveness status without performing any I/O."""
        return JSONResponse({"status": "ok"})

    if settings.metrics_enabled:

        @application.get("/metrics", tags=["system"], include_in_schema=False)
        async def metrics() -> Response:
            """Expose Prometheus metrics in text format."""
            body, content_type = get_metrics_response()
            return Response(content=body, media_type=content_type)

    return application


app = create_app()
"""The ASGI application passed to Uvicorn."""
