"""Redis-backed sliding window rate limiter for inbound chat requests.

Implements the sliding window log using a Redis sorted set per client
identity (ZADD / ZREMRANGEBYSCORE / ZCARD).  A single Lua script evicts
expired entries, counts, conditionally records the request and reports the
oldest remaining timestamp, so concurrent requests from the same identity
share one consistent view of the window without any client-side locking.

Typical usage::

    limiter = RateLimiter(redis_client, limit=10, window_seconds=60)
    decision = await limiter.admit(client_ip)
    if not decision.allowed:
        return JSONResponse({"error": "Too many requests"}, status_code=429,
                            headers=decision.headers())
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field

import redis.asyncio as aioredis
from redis.exceptions import NoScriptError

from grounded_chat.api.metrics import rate_limit_decisions_total

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_LIMIT: int = 10
DEFAULT_WINDOW_SECONDS: int = 60

_KEY_PREFIX = "ratelimit:chat"

# ---------------------------------------------------------------------------
# Lua script
# ---------------------------------------------------------------------------

# Atomic sliding-window admission.
#
# KEYS[1]  - sorted-set key for the identity
# ARGV[1]  - current timestamp (epoch ms)
# ARGV[2]  - window size (ms)
# ARGV[3]  - maximum requests allowed in the window
# ARGV[4]  - unique member ID for this request
# ARGV[5]  - TTL for the key (seconds, slightly > window)
#
# Returns {allowed (1|0), count after admission, oldest score or '-1'}.
_LUA_ADMIT = """
local key    = KEYS[1]
local now    = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit  = tonumber(ARGV[3])
local member = ARGV[4]
local ttl    = tonumber(ARGV[5])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
local allowed = 0
if count < limit then
    redis.call('ZADD', key, now, member)
    count = count + 1
    allowed = 1
end
redis.call('EXPIRE', key, ttl)
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
if #oldest == 0 then
    return {allowed, count, '-1'}
end
return {allowed, count, oldest[2]}
"""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateDecision:
    """Outcome of one admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Window capacity.
        remaining: Requests still available in the current window after this
            decision.
        reset_at: Epoch milliseconds at which the oldest counted request
            leaves the window.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> dict[str, str]:
        """Response headers describing this decision."""
        return {
            "x-RateLimit-Limit": str(self.limit),
            "x-RateLimit-Remaining": str(self.remaining),
            "x-RateLimit-Reset": str(self.reset_at),
        }


# ---------------------------------------------------------------------------
# RateLimiter
# ---------------------------------------------------------------------------


@dataclass
class RateLimiter:
    """Per-identity sliding window limiter shared by every worker process.

    Keys are ``ratelimit:chat:{identity}``.  When Redis is unreachable the
    limiter fails open: the request is admitted and a warning is logged.

    Attributes:
        redis_client: An initialised ``redis.asyncio.Redis`` connection.
        limit: Requests admitted per identity per window.
        window_seconds: Sliding window length.
    """

    redis_client: aioredis.Redis
    limit: int = DEFAULT_LIMIT
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    _sha_admit: str = field(default="", init=False, repr=False)

    def _key(self, identity: str) -> str:
        return f"{_KEY_PREFIX}:{identity}"

    async def _ensure_script_loaded(self) -> None:
        """Upload the Lua script on first use and cache its SHA1."""
        if self._sha_admit:
            return
        self._sha_admit = await self.redis_client.script_load(_LUA_ADMIT)

    async def _run_admit(self, key: str, now_ms: int) -> list:
        window_ms = self.window_seconds * 1000
        args = (
            str(now_ms),
            str(window_ms),
            str(self.limit),
            str(uuid.uuid4()),
            str(self.window_seconds + 10),
        )
        try:
            return await self.redis_client.evalsha(self._sha_admit, 1, key, *args)  # type: ignore[attr-defined]
        except NoScriptError:
            # Redis restarted and lost its script cache.
            self._sha_admit = ""
            await self._ensure_script_loaded()
            return await self.redis_client.evalsha(self._sha_admit, 1, key, *args)  # type: ignore[attr-defined]

    def _open_decision(self, now_ms: int) -> RateDecision:
        return RateDecision(
            allowed=True,
            limit=self.limit,
            remaining=self.limit,
            reset_at=now_ms + self.window_seconds * 1000,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def admit(self, identity: str) -> RateDecision:
        """Check the window for *identity* and record the request if admitted.

        Denied requests are not recorded, so a client hammering the endpoint
        regains access as soon as its oldest admitted request ages out.

        Args:
            identity: Client identity, normally its network address.

        Returns:
            The :class:`RateDecision`.  Never raises.
        """
        now_ms = int(time.time() * 1000)
        key = self._key(identity)
        try:
            await self._ensure_script_loaded()
            allowed_raw, count_raw, oldest_raw = await self._run_admit(key, now_ms)
        except Exception:
            logger.warning(
                "Redis unavailable - admitting request without rate limiting",
                extra={"identity": identity},
                exc_info=True,
            )
            rate_limit_decisions_total.labels(decision="fail_open").inc()
            return self._open_decision(now_ms)

        allowed = bool(int(allowed_raw))
        count = int(count_raw)
        oldest = int(float(oldest_raw))
        window_ms = self.window_seconds * 1000
        reset_at = (oldest if oldest >= 0 else now_ms) + window_ms

        decision = RateDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_at=reset_at,
        )
        if not allowed:
            logger.info(
                "Rate limited",
                extra={"identity": identity, "reset_at": reset_at},
            )
        rate_limit_decisions_total.labels(decision="allowed" if allowed else "denied").inc()
        return decision

    async def reset(self, identity: str) -> None:
        """Forget every recorded request for *identity*."""
        try:
            await self.redis_client.delete(self._key(identity))
            logger.info("Rate limit window reset", extra={"identity": identity})
        except Exception:
            logger.exception(
                "Redis error while resetting rate limit",
                extra={"identity": identity},
            )
