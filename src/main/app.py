"""
Main Application - Main Layer

This module serves as the entry point for the FastAPI application.
It initializes the container, creates the FastAPI app, and includes
the API routers.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.main.config import get_settings
from src.main.container import app_lifespan, init_container
from src.presentation.controllers import admin_router, demand_router, internal_router
from src.shared import configure_logging, get_logger, update_logging_from_settings

# Bootstrap logging from environment variables until settings are loaded
configure_logging()

settings = get_settings()

update_logging_from_settings(settings)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management.

    Delegates resource setup and teardown to the container's app_lifespan.
    """
    app.state.started_at = datetime.now(timezone.utc)
    logger.info("app.starting", version=settings.service.version)

    async with app_lifespan() as container:
        app.state.container = container
        yield

    logger.info("app.stopping")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application
    """
    settings = get_settings()

    init_container(settings)

    app = FastAPI(
        title=settings.service.title,
        description=settings.service.description,
        version=settings.service.version,
        debug=settings.service.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(demand_router)
    app.include_router(admin_router)
    app.include_router(internal_router)

    return app


app = create_app()
