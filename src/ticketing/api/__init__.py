"""Ticketing API package."""

from ticketing.api.errors import register_ticketing_exception_handlers
from ticketing.api.routes import payment_router, ticket_router

__all__ = ["payment_router", "ticket_router", "register_ticketing_exception_handlers"]
