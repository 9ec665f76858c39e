"""Pytest configuration and fixtures for gateway tests."""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vybe_mcp.cache.engine import TwoTierCache
from vybe_mcp.cache.memory import MemoryCacheBackend
from vybe_mcp.config.settings import Settings
from vybe_mcp.core.dispatcher import Dispatcher
from vybe_mcp.core.retry import RetryPolicy
from vybe_mcp.core.sessions import InMemorySessionStore
from vybe_mcp.handlers import HandlerContext, build_registry


TEST_API_KEY = "test-server-key"


@pytest.fixture(autouse=True)
def mock_environment_variables():
    """Pin settings to a known test environment."""
    env_vars = {
        "MCP_TEST_MODE": "1",
        "MCP_SERVER_API_KEY": TEST_API_KEY,
        "VYBE_API_KEY": "vybe-test-key",
        "OPENAI_API_KEY": "sk-test-key-for-testing-only",
        "ANTHROPIC_API_KEY": "sk-ant-REDACTED",
        "REDIS_URL": "",
        # Disable rate limiting unless a test turns it back on
        "RATE_LIMITING_ENABLED": "false",
        "LOG_LEVEL": "ERROR",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        Settings.refresh_from_env()
        yield
    Settings.refresh_from_env()


class StubVybeClient:
    """Stands in for ``VybeClient``.

    ``responses`` maps a client method name (``get_wallet_tokens``) to a
    payload, an exception to raise, or a callable taking the call arguments.
    Unconfigured methods return an empty ``data`` list.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        if not name.startswith("get_"):
            raise AttributeError(name)

        async def call(*args: Any, **kwargs: Any) -> Any:
            self.calls.append((name, args, kwargs))
            value = self.responses.get(name, {"data": []})
            if callable(value) and not isinstance(value, Exception):
                value = value(*args, **kwargs)
            if isinstance(value, Exception):
                raise value
            return value

        return call

    def calls_to(self, name: str) -> List[Tuple[tuple, dict]]:
        return [(args, kwargs) for called, args, kwargs in self.calls if called == name]


class StubProvider:
    """Chat provider returning canned replies or raising queued errors."""

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies = list(replies or ["stub reply"])
        self.requests: List[Dict[str, Any]] = []

    async def complete_chat(self, messages, *, model=None, max_tokens=1000):
        self.requests.append(
            {"messages": [dict(m) for m in messages], "model": model, "max_tokens": max_tokens}
        )
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def mock_http_session(status: int = 200, json_body: Any = None, text: str = "", reason: str = "OK"):
    """aiohttp-like session whose ``get``/``post`` yield one canned response."""
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.json = AsyncMock(return_value=json_body)
    response.text = AsyncMock(return_value=text)

    request_cm = MagicMock()
    request_cm.__aenter__ = AsyncMock(return_value=response)
    request_cm.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = request_cm
    session.post.return_value = request_cm
    return session


@pytest.fixture
def stub_vybe() -> StubVybeClient:
    return StubVybeClient()


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def handler_context(stub_vybe, no_sleep) -> HandlerContext:
    return HandlerContext(
        vybe=stub_vybe,  # type: ignore[arg-type]
        coingecko=None,
        openai=StubProvider(["openai reply"]),  # type: ignore[arg-type]
        anthropic=StubProvider(["anthropic reply"]),  # type: ignore[arg-type]
        sessions=InMemorySessionStore(),
        retry=RetryPolicy(sleep=no_sleep),
    )


@pytest.fixture
def memory_cache() -> TwoTierCache:
    return TwoTierCache(MemoryCacheBackend(default_ttl=120))


@pytest.fixture
def dispatcher(handler_context, memory_cache) -> Dispatcher:
    return Dispatcher(build_registry(), handler_context, memory_cache)


# Disable logging to reduce noise during tests
logging.getLogger().setLevel(logging.ERROR)
