"""Redis cache provider using ``redis.asyncio``.

Shared across processes and restarts, which makes it the production
choice for memoising completions.  Values are stored as JSON strings.
Every backend failure is raised as :class:`CacheError`.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from vectorqa.interfaces.cache_provider import ICacheProvider
from vectorqa.utils.errors import CacheError

logger = structlog.get_logger(logger_name=__name__)


class RedisCacheProvider(ICacheProvider):
    """Cache provider backed by a Redis server.

    Parameters
    ----------
    redis_url:
        Connection URL, e.g. ``redis://localhost:6379/0``.
    default_ttl:
        TTL in seconds applied when :meth:`set` is called without one.
    client:
        Pre-built ``redis.asyncio.Redis`` client (used by tests).
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        default_ttl: int | None = 86400,
        client: aioredis.Redis | None = None,
    ) -> None:
        self._client = client or aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        self._default_ttl = default_ttl

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except RedisError as exc:
            raise self._error("get", exc) from exc
        if raw is None:
            logger.debug("cache_miss", key=key)
            return None
        try:
            value = json.loads(raw)
        except ValueError as exc:
            raise self._error("decode", exc) from exc
        logger.debug("cache_hit", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = ttl if ttl is not None else self._default_ttl
        payload = json.dumps(value)
        try:
            if ttl:
                await self._client.setex(key, ttl, payload)
            else:
                await self._client.set(key, payload)
        except RedisError as exc:
            raise self._error("set", exc) from exc
        logger.debug("cache_set", key=key, ttl=ttl)

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise self._error("delete", exc) from exc

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._client.exists(key))
        except RedisError as exc:
            raise self._error("exists", exc) from exc

    async def clear(self) -> None:
        """Flush the current Redis database."""
        try:
            await self._client.flushdb()
        except RedisError as exc:
            raise self._error("flushdb", exc) from exc
        logger.info("cache_cleared", backend="redis")

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _error(operation: str, exc: Exception) -> CacheError:
        return CacheError(message=f"Redis {operation} failed: {exc}", provider_name="redis")
