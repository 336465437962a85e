"""In-memory cache provider using cachetools.TTLCache.

Used when no Redis URL is configured: fine for development and
single-process deployments, lost on restart.
"""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from vectorqa.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Time-to-live in seconds for every entry.
    """

    def __init__(self, max_size: int = 1000, ttl: int = 3600) -> None:
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key*.

        ``TTLCache`` applies one TTL to every entry, so a per-item *ttl*
        is ignored here; the Redis provider honours it.
        """
        self._cache[key] = value
        logger.debug("cache_set", key=key)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        size = len(self._cache)
        self._cache.clear()
        logger.info("cache_cleared", backend="memory", entries=size)
