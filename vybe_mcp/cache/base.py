"""Base cache abstractions shared by both cache tiers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int
    misses: int
    size: int
    max_size: int
    backend_type: str
    connection_info: str


class CacheBackend(ABC):
    """Abstract base class for cache backends."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the cache backend."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the cache backend."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set a value in the cache.

        Args:
            key: Cache key
            value: Value to cache (must be JSON-serializable for Redis)
            ttl: Time-to-live in seconds (None for the backend default)
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a value from the cache.

        Returns:
            True if key existed and was deleted
        """
        ...

    @abstractmethod
    async def clear(self, pattern: Optional[str] = None) -> int:
        """Clear cache entries.

        Args:
            pattern: Optional glob pattern (e.g. "solana_wallet_*").
                     If None, clears all entries.

        Returns:
            Number of entries cleared
        """
        ...

    @abstractmethod
    async def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        ...
