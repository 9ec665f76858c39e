"""HTTP surface for the gateway."""

from .app import create_app

__all__ = ["create_app"]
