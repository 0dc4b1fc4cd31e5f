"""
FastAPI application entrypoint for the QuickBooks OAuth broker.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qbo_broker.api.routes import router as api_router
from qbo_broker.core.config import get_settings
from qbo_broker.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="QuickBooks OAuth Broker",
        version="0.1.0",
        description="Per-workspace QuickBooks connections and API pass-through.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
