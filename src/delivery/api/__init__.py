"""Delivery API package."""

from delivery.api.routes import maintenance_router, order_router, user_router, wallet_router

__all__ = ["order_router", "wallet_router", "user_router", "maintenance_router"]
