"""In-process cache backend (tier 1)."""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import CacheBackend, CacheStats

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Single cache entry with optional expiration."""

    value: Any
    expires_at: Optional[float] = None  # Unix timestamp

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at


class MemoryCacheBackend(CacheBackend):
    """In-memory cache with per-entry TTL and a periodic expiry sweep.

    Entries are only removed once they expire. Passing ``max_size`` adds
    least-recently-used eviction on top of that; by default the store is
    unbounded within the TTL window.
    """

    def __init__(
        self,
        default_ttl: Optional[int] = 120,
        check_period: int = 60,
        max_size: Optional[int] = None,
    ):
        self._default_ttl = default_ttl
        self._check_period = check_period
        self._max_size = max_size
        self._cache: Dict[str, CacheEntry] = {}
        self._access_order: list[str] = []  # LRU tracking, only used with max_size
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._cleanup_task: Optional[asyncio.Task] = None

    async def initialize(self) -> None:
        """Start background cleanup task."""
        logger.info(
            f"Initializing in-memory cache (ttl: {self._default_ttl}s, "
            f"check period: {self._check_period}s)"
        )
        self._start_cleanup_task()

    async def close(self) -> None:
        """Stop cleanup task and drop all entries."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        self._cache.clear()
        self._access_order.clear()
        logger.info("In-memory cache closed")

    def _start_cleanup_task(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._periodic_cleanup())

    async def _periodic_cleanup(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._check_period)
                await self._cleanup_expired()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cache cleanup: {e}")

    async def _cleanup_expired(self) -> int:
        """Remove all expired entries."""
        async with self._lock:
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired()]
            for key in expired_keys:
                self._remove(key)

            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")

            return len(expired_keys)

    def _remove(self, key: str) -> None:
        self._cache.pop(key, None)
        if self._max_size is not None and key in self._access_order:
            self._access_order.remove(key)

    def _evict_lru(self) -> None:
        if self._max_size is None:
            return
        while len(self._cache) >= self._max_size and self._access_order:
            lru_key = self._access_order.pop(0)
            self._cache.pop(lru_key, None)

    def _touch(self, key: str) -> None:
        if self._max_size is None:
            return
        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired():
                self._remove(key)
                self._misses += 1
                return None

            self._hits += 1
            self._touch(key)
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._lock:
            if key not in self._cache:
                self._evict_lru()

            ttl = ttl if ttl is not None else self._default_ttl
            expires_at = time.time() + ttl if ttl else None
            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)
            self._touch(key)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                self._remove(key)
                return True
            return False

    async def clear(self, pattern: Optional[str] = None) -> int:
        async with self._lock:
            if pattern is None:
                count = len(self._cache)
                self._cache.clear()
                self._access_order.clear()
                return count

            keys_to_delete = [key for key in self._cache if fnmatch.fnmatch(key, pattern)]
            for key in keys_to_delete:
                self._remove(key)
            return len(keys_to_delete)

    async def get_stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            size=len(self._cache),
            max_size=self._max_size if self._max_size is not None else -1,
            backend_type="memory",
            connection_info="in-process",
        )
