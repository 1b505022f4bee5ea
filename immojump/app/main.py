"""
Immojump - webhook trigger service

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from immojump.app.api.webhooks import immojump_router
from immojump.app.dependencies import (
    get_client,
    get_registry,
    get_settings,
    initialize_services,
    shutdown_services,
)
from immojump.integrations.base import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting Immojump webhook service...")

    try:
        await initialize_services()
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Immojump webhook service...")
    try:
        await shutdown_services()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


settings = get_settings()

app = FastAPI(
    title="Immojump",
    description="Webhook trigger service for the Immojump real-estate API",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

app.include_router(immojump_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": settings.service_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, Any]:
    """
    Health check endpoint.

    Returns service health status including:
    - Configured trigger ids
    - Immojump API reachability (when a token is configured)
    """
    api_status = "not configured"
    if settings.api_token.get_secret_value():
        try:
            healthy = await get_client().health_check()
            api_status = "reachable" if healthy else "unreachable"
        except ConfigError as e:
            api_status = f"misconfigured: {e.message}"

    return {
        "status": "healthy",
        "environment": settings.environment,
        "api": api_status,
        "triggers": get_registry().list_triggers(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "immojump.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
