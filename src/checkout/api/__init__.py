"""Checkout domain API package."""

from checkout.api.routes import checkout_router, register_checkout_exception_handlers

__all__ = ["checkout_router", "register_checkout_exception_handlers"]
