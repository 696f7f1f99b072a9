"""
Cache Core - process-local TTL cache.
"""

from grc_backend.kernel.cache.ttl_cache import (
    CacheEntry,
    CacheStats,
    CacheSweeper,
    TTLCache,
    cache_key,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheSweeper",
    "TTLCache",
    "cache_key",
]
