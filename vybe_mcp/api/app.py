"""FastAPI application factory for the Vybe MCP gateway."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..cache.engine import cleanup_cache, get_cache
from ..config.settings import Settings
from ..core.dispatcher import JSONRPC_VERSION, Dispatcher
from ..handlers import build_default_context, build_registry
from ..utils.http_client import cleanup_http_client
from ..utils.rate_limiter import RateLimiter, cleanup_rate_limiter
from .dependencies import RejectedRequest
from .middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from .routes import register_routes

logger = logging.getLogger(__name__)


def create_app(
    dispatcher: Optional[Dispatcher] = None,
    *,
    rate_limiter: Optional[RateLimiter] = None,
    extra_app_kwargs: dict[str, Any] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    With no ``dispatcher`` the production one is assembled on startup: the
    global cache engine, the default method table and handler context built
    from settings.
    """

    # Reload settings in case env vars changed before app startup
    Settings.refresh_from_env()

    app_kwargs: dict[str, Any] = {
        "title": "Vybe MCP Gateway",
        "version": __version__,
        "docs_url": None,
        "redoc_url": None,
    }
    if extra_app_kwargs:
        app_kwargs.update(extra_app_kwargs)

    app = FastAPI(**app_kwargs)
    app.state.dispatcher = dispatcher
    app.state.rate_limiter = rate_limiter
    owns_dispatcher = dispatcher is None

    cors_origins = Settings.MCP_CORS_ORIGINS or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    # Request ID middleware last, so it wraps every request
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(RejectedRequest)
    async def _rejected(_request: Request, exc: RejectedRequest) -> JSONResponse:
        return JSONResponse(
            {
                "jsonrpc": JSONRPC_VERSION,
                "error": {"code": exc.code, "message": exc.message},
                "id": None,
            },
            status_code=exc.status_code,
            headers=exc.headers,
        )

    register_routes(app)

    @app.on_event("startup")
    async def _startup() -> None:
        if app.state.dispatcher is None:
            cache = await get_cache()
            app.state.dispatcher = Dispatcher(build_registry(), build_default_context(), cache)
        logger.info(
            "Starting Vybe MCP gateway on %s:%s (%d methods)",
            Settings.HOST,
            Settings.PORT,
            len(app.state.dispatcher.registry),
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        logger.info("Shutting down Vybe MCP gateway")
        if owns_dispatcher:
            await cleanup_cache()
            await cleanup_http_client()
        if app.state.rate_limiter is not None:
            await app.state.rate_limiter.shutdown()
        await cleanup_rate_limiter()

    return app


__all__ = ["create_app"]
