"""FastAPI application factory"""

from typing import Optional

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from autoquote_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from autoquote_gateway.api.v1 import match, quotes
from autoquote_gateway.config import Settings, settings
from autoquote_gateway.infrastructure.database.repositories import SqlSessionRepository
from autoquote_gateway.infrastructure.database.session import create_session_factory
from autoquote_gateway.infrastructure.observability.logging import setup_logging
from autoquote_gateway.services.quote_manager import QuoteManager
from autoquote_gateway.services.repository import InMemorySessionRepository, SessionRepository

# Setup structured logging
setup_logging(settings.log_level)


def build_repository(config: Settings) -> SessionRepository:
    """Pick the session store backend named in configuration"""
    if config.session_store == "database":
        return SqlSessionRepository(create_session_factory(config.database_url))
    if config.session_store == "memory":
        return InMemorySessionRepository()
    raise ValueError(f"Unknown session store: {config.session_store}")


def create_app(quote_manager: Optional[QuoteManager] = None, config: Optional[Settings] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    config = config or settings
    app = FastAPI(
        title="AutoQuote Gateway",
        description="Auto-loan pre-qualification, lender matching and quote negotiation service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # One manager per process, shared by every request
    app.state.quote_manager = quote_manager or QuoteManager(repository=build_repository(config), config=config)

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": config.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(match.router, prefix="/v1", tags=["matching"])
    app.include_router(quotes.router, prefix="/v1", tags=["quotes"])

    return app


app = create_app()
