"""Two-tier response cache.

Tier 1 is always the in-process store. Tier 2 is Redis and is enabled by
setting REDIS_URL.

Examples:
    Memory only (default): REDIS_URL unset or empty
    Redis: redis://localhost:6379/0
    Redis with auth: redis://:password@host:6379/0
"""

from .base import CacheBackend, CacheStats
from .engine import (
    CacheLookup,
    TwoTierCache,
    build_cache_from_settings,
    cleanup_cache,
    get_cache,
)
from .keys import canonical_params, make_cache_key
from .memory import MemoryCacheBackend

__all__ = [
    "CacheBackend",
    "CacheStats",
    "CacheLookup",
    "TwoTierCache",
    "MemoryCacheBackend",
    "build_cache_from_settings",
    "canonical_params",
    "make_cache_key",
    "get_cache",
    "cleanup_cache",
]
