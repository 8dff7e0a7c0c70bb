"""Health check route handlers.

``GET /api/health``
    Verifies the process is alive and can reach Redis (``PING``), which holds
    both the scrape cache and the rate-limit windows.  Always returns HTTP
    200; the ``status`` field distinguishes ``"ok"`` from ``"degraded"``.

These endpoints are diagnostic and never raise HTTP 5xx errors.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from grounded_chat.api.dependencies import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


async def _check_redis(client: aioredis.Redis) -> str:
    """Send ``PING`` to Redis.

    Returns:
        ``"ok"`` if Redis responds, ``"error"`` otherwise.
    """
    try:
        await client.ping()
        return "ok"
    except Exception:
        logger.exception("Health check: Redis unreachable")
        return "error"


@router.get("/api/health")
async def system_health(
    redis_client: Annotated[aioredis.Redis, Depends(get_redis)],
) -> JSONResponse:
    """Return process-level health including Redis connectivity.

    Returns:
        JSON with keys ``status``, ``redis`` and ``timestamp``.
    """
    redis_status = await _check_redis(redis_client)
    return JSONResponse(
        {
            "status": "ok" if redis_status == "ok" else "degraded",
            "redis": redis_status,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )
