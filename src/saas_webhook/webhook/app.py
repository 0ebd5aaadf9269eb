"""SaaS Webhook FastAPI Application."""

import logging

from fastapi import FastAPI

from saas_webhook import __version__
from saas_webhook.config import get_settings
from saas_webhook.webhook.router import router as webhook_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the SaaS Webhook FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="SaaS Webhook",
        description="Validates Azure Marketplace SaaS webhook notifications",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "service": "saas-webhook"}

    @app.get("/ready")
    async def ready_check() -> dict:
        """Readiness check endpoint."""
        return {"status": "ready", "service": "saas-webhook"}

    app.include_router(webhook_router)

    return app
