"""JSON-RPC error taxonomy.

Handlers raise these; the dispatcher is the only place that turns them into
wire error objects. Anything that is not an ``RpcError`` becomes a generic
internal error.
"""

from __future__ import annotations

from typing import Any, Dict

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
UPSTREAM_ERROR = -32000


class RpcError(Exception):
    """Base error carrying a JSON-RPC code and the HTTP status to answer with."""

    code: int = INTERNAL_ERROR
    http_status: int = 500

    def __init__(self, message: str, *, code: int | None = None, http_status: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InvalidRequestError(RpcError):
    code = INVALID_REQUEST
    http_status = 400


class MethodNotFoundError(RpcError):
    code = METHOD_NOT_FOUND
    http_status = 404

    def __init__(self, method: str):
        super().__init__(f"Method '{method}' not found")
        self.method = method


class InvalidParamsError(RpcError):
    """A required method parameter is missing or malformed."""

    code = INVALID_PARAMS
    http_status = 400

    def __init__(self, message: str, *, param: str | None = None):
        super().__init__(message)
        self.param = param


class UpstreamError(RpcError):
    """The analytics API or an LLM provider failed."""

    code = UPSTREAM_ERROR


class InternalError(RpcError):
    code = INTERNAL_ERROR

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


__all__ = [
    "RpcError",
    "InvalidRequestError",
    "MethodNotFoundError",
    "InvalidParamsError",
    "UpstreamError",
    "InternalError",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "UPSTREAM_ERROR",
]
