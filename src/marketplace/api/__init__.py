"""Marketplace API package."""

from marketplace.api.routes import order_router, webhook_router

__all__ = ["webhook_router", "order_router"]
