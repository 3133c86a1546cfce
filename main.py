#!/usr/bin/env python3
"""
GitHub Webhook Metrics Ingestion
Main application entry point
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
import structlog

from src.api.webhooks import router as webhook_router
from src.api.custom_data import router as custom_data_router
from src.api.health import router as health_router
from src.services.shared_services import ServiceContainer, build_services
from config.settings import Settings, settings

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

APP_VERSION = "1.0.0"


def create_app(
    app_settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the FastAPI application with its service container attached"""
    app_settings = app_settings or settings

    app = FastAPI(
        title="GitHub Webhook Metrics",
        description="Verifies GitHub webhooks and flattens them into time-series records",
        version=APP_VERSION,
        docs_url="/docs" if app_settings.DEBUG else None,
        redoc_url=None,
    )
    app.state.settings = app_settings
    app.state.services = services or build_services(app_settings)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["health"])
    app.include_router(webhook_router, tags=["webhooks"])
    app.include_router(custom_data_router, tags=["custom-data"])

    @app.get("/", tags=["root"])
    async def root():
        """Service summary"""
        return {
            "message": "GitHub Webhook Metrics",
            "version": APP_VERSION,
            "status": "running",
            "webhook": "/webhooks",
            "health": "/health",
        }

    @app.on_event("startup")
    async def startup_event():
        """Log configuration on startup"""
        logger.info(
            "Starting GitHub Webhook Metrics",
            host=app_settings.HOST,
            port=app_settings.PORT,
            sink=app.state.services.sink.name,
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        """Clean up on shutdown"""
        logger.info("Shutting down GitHub Webhook Metrics")
        await app.state.services.close()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_level=settings.LOG_LEVEL.lower(),
    )
