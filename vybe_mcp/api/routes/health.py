"""Health and discovery endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from ... import __version__

router = APIRouter(prefix="", tags=["health"])
logger = logging.getLogger(__name__)


async def _cache_stats(request: Request) -> Optional[Dict[str, Any]]:
    cache = getattr(request.app.state.dispatcher, "cache", None)
    if cache is None:
        return None
    try:
        return await cache.stats()
    except Exception as e:
        logger.debug("Failed to read cache stats: %s", e)
        return None


async def _active_sessions(request: Request) -> Optional[int]:
    context = getattr(request.app.state.dispatcher, "context", None)
    sessions = getattr(context, "sessions", None)
    if sessions is None:
        return None
    return await sessions.count()


@router.get("/health", summary="Gateway health status")
async def health_status(request: Request) -> Dict[str, object]:
    return {
        "status": "ok",
        "version": __version__,
        "methods": len(request.app.state.dispatcher.registry),
        "cache": await _cache_stats(request),
        "active_sessions": await _active_sessions(request),
    }


@router.get("/methods", summary="Available JSON-RPC methods")
async def list_methods(request: Request) -> Dict[str, object]:
    return {"methods": request.app.state.dispatcher.registry.list_specs()}


__all__ = ["router"]
