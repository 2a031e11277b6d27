"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkout_service import __version__
from checkout_service.api.v1.router import api_router
from checkout_service.config import get_settings
from checkout_service.infrastructure.database.connection import close_engine
from checkout_service.infrastructure.redis import close_redis
from checkout_service.logging_config import configure_logging
from checkout_service.middleware.request_context import RequestContextMiddleware

configure_logging(get_settings())

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Starting Storefront Checkout Service",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
        email_service=settings.email_service,
    )

    yield

    await close_redis()
    await close_engine()
    logger.info("Shutting down Storefront Checkout Service")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Storefront Checkout API",
        description="Checkout attempt recording, abandoned cart reminders and checkout rules",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def run() -> None:
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "checkout_service.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.api_workers,
    )


if __name__ == "__main__":
    run()
