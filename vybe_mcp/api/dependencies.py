"""Request guards for the JSON-RPC endpoint."""

from __future__ import annotations

import hmac
import logging
from typing import Dict, Optional

from fastapi import Request

from ..config.settings import Settings
from ..core.errors import UPSTREAM_ERROR
from ..utils.rate_limiter import get_rate_limiter

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


class RejectedRequest(Exception):
    """A request refused before dispatch; rendered as a JSON-RPC error with ``id: null``."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        code: int = UPSTREAM_ERROR,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.headers = headers or {}


def client_identifier(request: Request) -> str:
    return request.client.host if request.client else "anonymous"


async def require_api_key(request: Request) -> None:
    """Reject requests whose ``x-api-key`` header does not match the server key."""
    expected = Settings.MCP_SERVER_API_KEY
    provided = request.headers.get(API_KEY_HEADER)

    if not expected:
        logger.warning("MCP_SERVER_API_KEY is not set; rejecting all JSON-RPC requests")
    if not expected or not provided or not hmac.compare_digest(provided, expected):
        logger.warning(f"Unauthorized access attempt from {client_identifier(request)}")
        raise RejectedRequest(401, "Unauthorized")


async def enforce_rate_limit(request: Request) -> None:
    """Apply the per-client request budget when rate limiting is enabled."""
    if not Settings.RATE_LIMITING_ENABLED:
        return

    limiter = getattr(request.app.state, "rate_limiter", None) or await get_rate_limiter()
    allowed, info = await limiter.check_rate_limit(client_identifier(request))
    if allowed:
        return

    minutes = max(1, limiter.limit.window // 60)
    raise RejectedRequest(
        429,
        f"Too many requests from this IP, please try again after {minutes} minutes",
        headers={"Retry-After": str(int(info["retry_after"]) + 1)},
    )


__all__ = ["RejectedRequest", "require_api_key", "enforce_rate_limit", "client_identifier"]
