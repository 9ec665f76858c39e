"""JSON-RPC request dispatch.

``Dispatcher.handle`` is the only place where handler outcomes become wire
responses: it validates the envelope, resolves the method, validates its
parameters, consults the cache and maps every failure to an error object.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from ..cache.engine import TwoTierCache
from ..cache.keys import make_cache_key
from .errors import (
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    RpcError,
)
from .registry import MethodRegistry, MethodSpec

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# Validation error types that mean a parameter was not supplied in usable form
_ABSENT_ERROR_TYPES = {
    "missing",
    "string_too_short",
    "string_blank",
    "too_short",
    "string_type",
    "list_type",
}


@dataclass
class JsonRpcResponse:
    body: Dict[str, Any]
    status_code: int = 200


def success_response(result: Any, request_id: Any) -> JsonRpcResponse:
    return JsonRpcResponse({"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id})


def error_response(error: RpcError, request_id: Any = None) -> JsonRpcResponse:
    return JsonRpcResponse(
        {"jsonrpc": JSONRPC_VERSION, "error": error.to_dict(), "id": request_id},
        status_code=error.http_status,
    )


def parse_envelope(payload: Any) -> Tuple[str, Dict[str, Any], Any]:
    """Return ``(method, params, id)`` or raise ``InvalidRequestError``."""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid JSON-RPC request")

    method = payload.get("method")
    request_id = payload.get("id")
    params = payload.get("params")

    if payload.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError("Invalid JSON-RPC request")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError("Invalid JSON-RPC request")
    if request_id is None or isinstance(request_id, bool):
        raise InvalidRequestError("Invalid JSON-RPC request")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise InvalidRequestError("Invalid JSON-RPC request: params must be an object")

    return method, params, request_id


class Dispatcher:
    def __init__(
        self,
        registry: MethodRegistry,
        context: Any,
        cache: Optional[TwoTierCache] = None,
    ):
        self.registry = registry
        self.context = context
        self.cache = cache

    async def handle(self, payload: Any) -> JsonRpcResponse:
        start = time.perf_counter()

        try:
            method, raw_params, request_id = parse_envelope(payload)
        except InvalidRequestError as exc:
            logger.warning(f"Rejected request: {exc.message}")
            return error_response(exc)

        logger.info(f"Request received: method={method} id={request_id}")

        try:
            spec = self.registry.get(method)
            if spec is None:
                raise MethodNotFoundError(method)

            params = self._validate_params(spec, raw_params)
            result, cached_tier = await self._invoke(spec, params)
        except RpcError as exc:
            duration = _elapsed_ms(start)
            if isinstance(exc, (MethodNotFoundError, InvalidParamsError)):
                logger.warning(f"Request failed: method={method} id={request_id}: {exc.message}")
            else:
                logger.error(
                    f"Error handling method '{method}' id={request_id} "
                    f"after {duration}ms: {exc.message}"
                )
            return error_response(exc, request_id)
        except Exception:
            logger.exception(
                f"Unexpected error handling method '{method}' id={request_id} "
                f"after {_elapsed_ms(start)}ms"
            )
            return error_response(InternalError(), request_id)

        duration = _elapsed_ms(start)
        if cached_tier:
            logger.debug(
                f"Response served from {cached_tier} cache: method={method} "
                f"id={request_id} duration={duration}ms"
            )
        else:
            logger.info(f"Request completed: method={method} id={request_id} duration={duration}ms")
        return success_response(result, request_id)

    def _validate_params(self, spec: MethodSpec, raw_params: Dict[str, Any]) -> Any:
        try:
            return spec.params_model.model_validate(raw_params)
        except ValidationError as exc:
            param, message = describe_validation_error(spec.params_model, exc)
            raise InvalidParamsError(message, param=param) from exc

    async def _invoke(self, spec: MethodSpec, params: Any) -> Tuple[Any, Optional[str]]:
        """Run the handler, going through the cache when the method allows it."""
        if not spec.cacheable or self.cache is None:
            return await spec.handler(self.context, params), None

        key = make_cache_key(spec.name, params.model_dump(mode="json"))
        cached = await self.cache.lookup(key)
        if cached.hit:
            return cached.value, cached.tier

        result = await spec.handler(self.context, params)
        await self.cache.store(key, result, tier2=spec.tier2_eligible)
        return result, None


def describe_validation_error(model: Any, exc: ValidationError) -> Tuple[Optional[str], str]:
    """Return ``(param, message)`` for the first problem pydantic reported.

    A model may map parameter names to a fixed message used when that
    parameter is missing, empty or of the wrong kind (``required_messages``).
    """
    errors = exc.errors()
    if not errors:
        return None, "Invalid params"

    first = errors[0]
    loc = first.get("loc") or ()
    if not loc:
        # Model-level validator: report its own message
        ctx_error = (first.get("ctx") or {}).get("error")
        return None, str(ctx_error) if ctx_error is not None else first.get("msg", "Invalid params")

    param = str(loc[0])
    required_messages = getattr(model, "required_messages", {}) or {}
    if first.get("type") in _ABSENT_ERROR_TYPES and param in required_messages:
        return param, required_messages[param]

    return param, f"Invalid parameter '{param}': {first.get('msg', 'invalid value')}"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
