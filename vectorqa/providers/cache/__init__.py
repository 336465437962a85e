"""Cache providers.

MemoryCacheProvider is a TTL dict local to one process.  RedisCacheProvider
is shared across workers and restarts; main.py picks it when REDIS_URL is set.
"""

from vectorqa.providers.cache.memory_cache import MemoryCacheProvider
from vectorqa.providers.cache.redis_cache import RedisCacheProvider

__all__ = ["MemoryCacheProvider", "RedisCacheProvider"]
