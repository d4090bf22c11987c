"""ASGI application factory and dependencies for the idmask server."""

from idmask.server.app import app, create_app

__all__ = ["app", "create_app"]
