"""Redis cache backend (tier 2), shared across gateway processes."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from .base import CacheBackend, CacheStats

logger = logging.getLogger(__name__)


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache.

    Values are stored as JSON strings and expire through Redis' native
    ``EX`` option, so expiry is enforced by the server rather than by us.
    """

    def __init__(
        self,
        redis_url: str,
        prefix: str = "mcp:",
        default_ttl: int = 300,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (redis://host:port/db)
            prefix: Key prefix for all cache entries
            default_ttl: Default TTL in seconds when not specified
        """
        self._redis_url = redis_url
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._redis: Optional[Redis] = None
        self._hits = 0
        self._misses = 0

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def initialize(self) -> None:
        """Connect to Redis and verify the connection with PING."""
        logger.info(f"Connecting to Redis: {self._sanitize_url(self._redis_url)}")

        client = aioredis.from_url(
            self._redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )
        try:
            await client.ping()
        except Exception:
            await client.aclose()
            raise

        self._redis = client
        logger.info("Redis connection established")

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed")

    @staticmethod
    def _sanitize_url(url: str) -> str:
        """Remove password from URL for logging."""
        return re.sub(r":([^:@]+)@", r":***@", url)

    def _require(self) -> Redis:
        if not self._redis:
            raise RuntimeError("Redis not initialized")
        return self._redis

    async def get(self, key: str) -> Optional[Any]:
        data = await self._require().get(self._make_key(key))
        if data is None:
            self._misses += 1
            return None

        self._hits += 1
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return data

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self._require().set(
            self._make_key(key),
            json.dumps(value),
            ex=ttl or self._default_ttl,
        )

    async def delete(self, key: str) -> bool:
        result = await self._require().delete(self._make_key(key))
        return result > 0

    async def clear(self, pattern: Optional[str] = None) -> int:
        client = self._require()
        count = 0
        async for key in client.scan_iter(match=self._make_key(pattern or "*"), count=100):
            await client.delete(key)
            count += 1
        return count

    async def get_stats(self) -> CacheStats:
        size = 0
        if self._redis:
            db = self._redis.connection_pool.connection_kwargs.get("db", 0)
            info = await self._redis.info("keyspace")
            db_info = info.get(f"db{db}", {})
            size = db_info.get("keys", 0) if isinstance(db_info, dict) else 0

        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            size=size,
            max_size=-1,
            backend_type="redis",
            connection_info=self._sanitize_url(self._redis_url),
        )
