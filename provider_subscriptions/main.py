"""FastAPI application entry point and lifecycle management."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from provider_subscriptions.logging_config import (
    configure_logging,
    get_logger,
    set_virtual_time_source,
)
from provider_subscriptions.middleware import ContextMiddleware, RequestLoggingMiddleware

logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Starts the expiration scheduler on startup and stops it on shutdown.
    """
    from provider_subscriptions.services.scheduler import shutdown_scheduler, start_scheduler

    logger.info("service_starting", version=VERSION)

    try:
        scheduler = start_scheduler()
        logger.info("service_started", status="ready", scheduler_running=scheduler is not None)
        yield
    finally:
        logger.info("service_shutting_down")
        shutdown_scheduler()
        logger.info("service_stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_format = os.getenv("LOG_FORMAT", "json").lower() == "json"
    configure_logging(log_level=log_level, json_format=json_format)

    from provider_subscriptions.services.clock import get_clock

    clock = get_clock()
    set_virtual_time_source(lambda: clock.now() if clock.offset else None)

    app = FastAPI(
        title="Provider Subscriptions",
        description="Subscription admission, activation and expiration for marketplace providers",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Allow all origins for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    include_request_details = os.getenv("LOG_REQUEST_DETAILS", "true").lower() == "true"
    app.add_middleware(RequestLoggingMiddleware, include_request_details=include_request_details)
    app.add_middleware(ContextMiddleware)

    from provider_subscriptions.api.admin import router as admin_router
    from provider_subscriptions.api.control import router as control_router
    from provider_subscriptions.api.payments import router as payments_router
    from provider_subscriptions.api.providers import router as providers_router
    from provider_subscriptions.api.subscriptions import router as subscriptions_router

    app.include_router(subscriptions_router)
    app.include_router(payments_router)
    app.include_router(providers_router)
    app.include_router(admin_router)
    app.include_router(control_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        logger.debug("root_endpoint_called")
        return {
            "service": "provider-subscriptions",
            "status": "running",
            "version": VERSION,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Detailed health check."""
        from provider_subscriptions.config import get_config
        from provider_subscriptions.services.scheduler import is_scheduler_running

        config = get_config()
        active_plans = sum(1 for plan in config.plans if plan.active)
        return {
            "status": "healthy",
            "config": f"loaded ({active_plans} active plans)",
            "scheduler": "running" if is_scheduler_running() else "stopped",
            "lease_store": "redis" if config.redis_url else "none",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    logger.info("app_created", endpoints=len(app.routes))
    return app


app = create_app()
