"""Storefront cart API package."""

from storefront.api.routes import cart_router

__all__ = ["cart_router"]
