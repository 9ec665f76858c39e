"""Shared HTTP client for consistent session management across upstream integrations."""

import logging
import aiohttp
import asyncio
from typing import Optional

from .. import __version__

logger = logging.getLogger(__name__)


class SharedHTTPClient:
    """Shared HTTP client with connection pooling and resource management."""

    _instance: Optional["SharedHTTPClient"] = None

    def __init__(self):
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    async def get_instance(cls) -> "SharedHTTPClient":
        """Get singleton instance of shared HTTP client."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session.

        Recreates the session if the associated event loop is different or closed
        (happens when tests call asyncio.run more than once).
        """
        current_loop = asyncio.get_running_loop()
        recreate = False
        if self._session is None or self._closed:
            recreate = True
        elif self._loop is None or self._loop.is_closed() or self._loop is not current_loop:
            if self._session and not self._session.closed:
                try:
                    await self._session.close()
                except RuntimeError as exc:
                    logger.debug(f"Ignoring error closing stale HTTP session: {exc}")
            self._session = None
            recreate = True

        if recreate:
            await self._create_session()
        assert self._session is not None, "Session should be created by _create_session"
        return self._session

    async def _create_session(self):
        """Create new HTTP session with pooled connections."""
        connector = aiohttp.TCPConnector(
            limit=100,
            limit_per_host=20,
            ttl_dns_cache=300,
            use_dns_cache=True,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )

        # Shorter defaults in test mode to avoid long hangs
        import os as _os

        if _os.getenv("MCP_TEST_MODE") == "1":
            timeout = aiohttp.ClientTimeout(total=20, connect=5, sock_read=10)
        else:
            timeout = aiohttp.ClientTimeout(total=60, connect=10, sock_read=30)

        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers={"User-Agent": f"vybe-mcp/{__version__}"},
            trust_env=True,
        )

        logger.info("Created shared HTTP session with connection pooling")
        self._closed = False
        self._loop = asyncio.get_running_loop()

    async def close(self):
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Closed shared HTTP session")
        self._session = None
        self._closed = True
        self._loop = None


_global_client: Optional[SharedHTTPClient] = None


async def get_http_client() -> SharedHTTPClient:
    """Get global HTTP client instance."""
    global _global_client
    if _global_client is None:
        _global_client = await SharedHTTPClient.get_instance()
    return _global_client


async def cleanup_http_client():
    """Cleanup global HTTP client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
    SharedHTTPClient._instance = None


async def get_session() -> aiohttp.ClientSession:
    """Get HTTP session from global client."""
    client = await get_http_client()
    return await client.get_session()
