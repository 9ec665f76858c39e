"""API route registration helpers."""

from fastapi import FastAPI

from . import health, rpc


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the provided FastAPI instance."""

    app.include_router(health.router)
    app.include_router(rpc.router)


__all__ = ["register_routes"]
