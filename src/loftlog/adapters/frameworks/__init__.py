"""Framework adapters exposing request logging and log endpoints."""

from loftlog.adapters.frameworks.asgi import ASGILoggingMiddleware, create_asgi_app

__all__ = ["ASGILoggingMiddleware", "create_asgi_app"]
