"""Marketplace HTTP API package."""

from marketplace.api.application import create_app
from marketplace.api.routes import cart_router, flash_sale_router, order_router, product_router

__all__ = ["create_app", "cart_router", "flash_sale_router", "order_router", "product_router"]
