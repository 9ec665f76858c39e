"""Two-tier cache engine and global instance management."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import CacheBackend
from .memory import MemoryCacheBackend

logger = logging.getLogger(__name__)


@dataclass
class CacheLookup:
    """Outcome of a two-tier lookup."""

    hit: bool
    value: Any = None
    tier: Optional[str] = None  # "memory" or "redis"


MISS = CacheLookup(hit=False)


class TwoTierCache:
    """In-process tier 1 backed by an optional shared tier 2.

    Tier 2 is best effort: if it was never configured, failed to connect, or
    raises on an individual call, the cache behaves as tier-1 only and the
    failure is logged, never raised.
    """

    def __init__(
        self,
        tier1: Optional[CacheBackend] = None,
        tier2: Optional[CacheBackend] = None,
        *,
        tier1_ttl: int = 120,
        tier2_ttl: int = 300,
    ):
        self.tier1: CacheBackend = tier1 or MemoryCacheBackend(default_ttl=tier1_ttl)
        self.tier2: Optional[CacheBackend] = tier2
        self.tier1_ttl = tier1_ttl
        self.tier2_ttl = tier2_ttl
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def has_tier2(self) -> bool:
        return self.tier2 is not None

    async def initialize(self) -> None:
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            await self.tier1.initialize()
            if self.tier2 is not None:
                try:
                    await self.tier2.initialize()
                except Exception as exc:
                    logger.warning(f"Shared cache unavailable, continuing with memory only: {exc}")
                    self.tier2 = None

            self._initialized = True
            logger.info(
                "Cache engine initialized: %s", "memory+redis" if self.has_tier2 else "memory"
            )

    async def close(self) -> None:
        await self.tier1.close()
        if self.tier2 is not None:
            try:
                await self.tier2.close()
            except Exception as exc:
                logger.warning(f"Error closing shared cache: {exc}")
        self._initialized = False

    async def lookup(self, key: str) -> CacheLookup:
        """Check tier 1, then tier 2; a tier-2 hit is copied into tier 1."""
        value = await self.tier1.get(key)
        if value is not None:
            return CacheLookup(hit=True, value=value, tier="memory")

        if self.tier2 is None:
            return MISS

        try:
            value = await self.tier2.get(key)
        except Exception as exc:
            logger.error(f"Error querying shared cache: {exc}")
            return MISS

        if value is None:
            return MISS

        await self.tier1.set(key, value, self.tier1_ttl)
        return CacheLookup(hit=True, value=value, tier="redis")

    async def store(self, key: str, value: Any, *, tier2: bool = False) -> None:
        """Write to tier 1 always, and to tier 2 when asked and available."""
        await self.tier1.set(key, value, self.tier1_ttl)

        if not tier2 or self.tier2 is None:
            return

        try:
            await self.tier2.set(key, value, self.tier2_ttl)
        except Exception as exc:
            logger.error(f"Error saving to shared cache: {exc}")

    async def stats(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"memory": vars(await self.tier1.get_stats())}
        if self.tier2 is not None:
            try:
                result["redis"] = vars(await self.tier2.get_stats())
            except Exception as exc:
                logger.debug(f"Failed to read shared cache stats: {exc}")
                result["redis"] = None
        return result


def build_cache_from_settings() -> TwoTierCache:
    """Create the cache described by the current settings."""
    from ..config.settings import Settings

    tier2: Optional[CacheBackend] = None
    if Settings.REDIS_URL:
        from .redis import RedisCacheBackend

        tier2 = RedisCacheBackend(
            redis_url=Settings.REDIS_URL,
            prefix=Settings.MCP_CACHE_PREFIX,
            default_ttl=Settings.MCP_REDIS_TTL,
        )

    tier1 = MemoryCacheBackend(
        default_ttl=Settings.MCP_CACHE_TTL,
        check_period=Settings.MCP_CACHE_CHECK_PERIOD,
    )
    return TwoTierCache(
        tier1,
        tier2,
        tier1_ttl=Settings.MCP_CACHE_TTL,
        tier2_ttl=Settings.MCP_REDIS_TTL,
    )


# Global cache instance
_cache: Optional[TwoTierCache] = None


async def get_cache() -> TwoTierCache:
    """Get the initialized global cache."""
    global _cache

    if _cache is None:
        _cache = build_cache_from_settings()
    await _cache.initialize()
    return _cache


async def cleanup_cache() -> None:
    """Close and drop the global cache."""
    global _cache

    if _cache:
        await _cache.close()
        _cache = None
