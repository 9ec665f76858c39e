"""Request ID middleware for request tracing and log correlation."""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id() -> Optional[str]:
    """Get the current request ID from context, or None outside a request."""
    return request_id_ctx.get()


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request.

    Uses the incoming X-Request-ID header when present, otherwise generates
    one, stores it in a context variable for log records and echoes it on the
    response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        token = request_id_ctx.set(request_id)

        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestIDLogFilter:
    """Logging filter that adds request_id to log records."""

    def filter(self, record) -> bool:
        record.request_id = get_request_id() or "-"
        return True


__all__ = [
    "RequestIDMiddleware",
    "RequestIDLogFilter",
    "get_request_id",
    "generate_request_id",
    "request_id_ctx",
    "REQUEST_ID_HEADER",
]
