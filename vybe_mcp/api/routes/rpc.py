"""JSON-RPC endpoint."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...core.dispatcher import error_response
from ...core.errors import InvalidRequestError
from ..dependencies import enforce_rate_limit, require_api_key

router = APIRouter(prefix="", tags=["rpc"])
logger = logging.getLogger(__name__)


@router.post(
    "/mcp",
    summary="JSON-RPC 2.0 method dispatch",
    dependencies=[Depends(enforce_rate_limit), Depends(require_api_key)],
)
async def rpc_endpoint(request: Request) -> JSONResponse:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Rejected request with malformed JSON body")
        response = error_response(InvalidRequestError("Invalid JSON-RPC request"))
    else:
        response = await request.app.state.dispatcher.handle(payload)

    return JSONResponse(response.body, status_code=response.status_code)


__all__ = ["router"]
