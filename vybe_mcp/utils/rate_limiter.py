import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class RateLimit:
    """Rate limit configuration."""

    requests: int  # Number of requests allowed
    window: int  # Time window in seconds


class RateLimiter:
    """Sliding-window in-memory rate limiter keyed by client identifier.

    Keys are kept in LRU order; the least recently seen clients are evicted
    once ``max_keys`` is reached.
    """

    def __init__(
        self,
        limit: Optional[RateLimit] = None,
        max_keys: int = 10000,
        cleanup_interval: int = 60,
    ):
        self.limit = limit or RateLimit(requests=100, window=900)
        self.request_history: "OrderedDict[str, List[float]]" = OrderedDict()
        self.lock = asyncio.Lock()
        self.max_keys = max_keys
        self.cleanup_interval = cleanup_interval
        self._cleanup_task: Optional[asyncio.Task] = None
        self._shutdown = False

        logger.info(
            f"Initialized rate limiter ({self.limit.requests} requests / {self.limit.window}s, "
            f"max_keys: {max_keys})"
        )

    def _start_cleanup_task(self) -> None:
        if self._shutdown:
            return
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_old_records())

    def _evict_lru_keys(self, target_count: int) -> None:
        evicted = 0
        while len(self.request_history) > target_count:
            self.request_history.popitem(last=False)
            evicted += 1
        if evicted:
            logger.debug(f"Evicted {evicted} LRU rate limit keys")

    async def _cleanup_old_records(self) -> None:
        while not self._shutdown:
            try:
                await asyncio.sleep(self.cleanup_interval)
                cutoff = time.time() - self.limit.window

                async with self.lock:
                    empty = []
                    for key, stamps in self.request_history.items():
                        stamps[:] = [t for t in stamps if t > cutoff]
                        if not stamps:
                            empty.append(key)
                    for key in empty:
                        del self.request_history[key]

                if empty:
                    logger.debug(f"Rate limiter cleanup: removed {len(empty)} idle keys")
            except asyncio.CancelledError:
                logger.debug("Rate limiter cleanup task cancelled")
                break
            except Exception as e:
                logger.error(f"Error in rate limiter cleanup: {e}")

    async def check_rate_limit(self, key: str) -> Tuple[bool, Dict[str, Any]]:
        """Record a request for ``key`` if it fits the window.

        Returns:
            tuple: (is_allowed, info) where info carries limit, remaining and
            retry_after seconds.
        """
        self._start_cleanup_task()

        async with self.lock:
            now = time.time()
            window_start = now - self.limit.window

            if key in self.request_history:
                self.request_history.move_to_end(key)
            else:
                if len(self.request_history) >= self.max_keys:
                    self._evict_lru_keys(self.max_keys - 1)
                self.request_history[key] = []

            stamps = [t for t in self.request_history[key] if t > window_start]
            self.request_history[key] = stamps

            if len(stamps) < self.limit.requests:
                stamps.append(now)
                return True, {
                    "allowed": True,
                    "limit": self.limit.requests,
                    "remaining": self.limit.requests - len(stamps),
                    "retry_after": 0,
                }

            retry_after = stamps[0] + self.limit.window - now
            return False, {
                "allowed": False,
                "limit": self.limit.requests,
                "remaining": 0,
                "retry_after": max(0.0, retry_after),
            }

    async def reset(self, key: str) -> None:
        async with self.lock:
            self.request_history.pop(key, None)

    async def shutdown(self) -> None:
        """Stop the cleanup task and drop all history."""
        self._shutdown = True
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass

        async with self.lock:
            self.request_history.clear()

        logger.info("Rate limiter shutdown completed")

    async def get_stats(self) -> Dict[str, Any]:
        async with self.lock:
            return {
                "total_keys": len(self.request_history),
                "max_keys": self.max_keys,
                "total_records": sum(len(s) for s in self.request_history.values()),
                "limit": self.limit.requests,
                "window": self.limit.window,
            }


# Global rate limiter instance
_global_rate_limiter: Optional[RateLimiter] = None


async def get_rate_limiter() -> RateLimiter:
    """Get or create the global rate limiter configured from settings."""
    global _global_rate_limiter

    if _global_rate_limiter is None:
        from ..config.settings import Settings

        _global_rate_limiter = RateLimiter(
            RateLimit(
                requests=Settings.MCP_RATE_LIMIT_REQUESTS,
                window=Settings.MCP_RATE_LIMIT_WINDOW,
            )
        )

    return _global_rate_limiter


async def cleanup_rate_limiter() -> None:
    global _global_rate_limiter
    if _global_rate_limiter:
        await _global_rate_limiter.shutdown()
        _global_rate_limiter = None
