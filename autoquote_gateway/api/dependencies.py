"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from autoquote_gateway.services.quote_manager import QuoteManager


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_quote_manager(request: Request) -> QuoteManager:
    """Provide the process-wide quote manager built by the app factory"""
    return request.app.state.quote_manager
