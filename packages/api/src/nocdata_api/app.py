"""FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import FastAPI

from nocdata_api import __version__
from nocdata_api.middleware.logging import LoggingMiddleware
from nocdata_api.routers.health import router as health_router

logger = structlog.get_logger()


def create_app() -> FastAPI:
    app = FastAPI(
        title="nocdata seeder health",
        description="Health and progress endpoints for the nocdata seeding pipeline",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )

    app.add_middleware(LoggingMiddleware)
    app.include_router(health_router)

    logger.info("app_created")
    return app
