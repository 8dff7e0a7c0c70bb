"""Key-value store collaborator for the scrape cache.

The scrape cache only needs three single round-trip operations, so it is
written against the :class:`KeyValueStore` protocol.  Production wires in
:class:`RedisKeyValueStore`; tests substitute an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as aioredis


class KeyValueStore(Protocol):
    """Async string key-value store with per-key TTL."""

    async def get(self, key: str) -> str | None:
        """Return the value stored at *key*, or ``None`` if absent or expired."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store *value* at *key*, expiring after *ttl_seconds*."""

    async def delete(self, key: str) -> None:
        """Remove *key* if present."""


@dataclass
class RedisKeyValueStore:
    """:class:`KeyValueStore` backed by ``redis.asyncio``.

    Expiry is enforced by Redis itself (``SET ... EX``); nothing is tracked
    client-side.

    Attributes:
        redis_client: An initialised ``redis.asyncio.Redis`` connection.  It
            should be created with ``decode_responses=True``; raw ``bytes``
            replies are decoded as UTF-8 regardless.
    """

    redis_client: aioredis.Redis

    async def get(self, key: str) -> str | None:
        value = await self.redis_client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.redis_client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.redis_client.delete(key)
