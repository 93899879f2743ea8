"""FastAPI application entrypoint."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from progresstracker.api import health
from progresstracker.api.errors import register_exception_handlers
from progresstracker.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from progresstracker.api.router import api_router
from progresstracker.config import Settings, settings
from progresstracker.logging import setup_logging
from progresstracker.services.container import ServiceContainer, create_container

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
    )
    logger.info("Sentry initialized")


async def sweep_periodically(container: ServiceContainer, interval: int) -> None:
    """Evict expired in-process state until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = await container.sweep()
        if removed:
            logger.debug(f"Swept {removed} expired entries")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging(app.state.settings)
    # A container may already be installed (tests, embedding apps)
    container: ServiceContainer | None = getattr(app.state, "container", None)
    owns_container = container is None
    if container is None:
        container = await create_container(app.state.settings)
        app.state.container = container

    sweeper = asyncio.create_task(
        sweep_periodically(container, app.state.settings.cache_sweep_interval_seconds)
    )
    logger.info(f"Progress Tracker API starting ({app.state.settings.environment})")
    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    if owns_container:
        await container.aclose()
    logger.info("Progress Tracker API stopped")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Services are created in the lifespan handler and stored on
    ``app.state.container``.
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="Progress Tracker API",
        description="Email OTP authentication for the Progress Tracker dashboards",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs" if app_settings.debug_enabled else None,
        redoc_url="/api/redoc" if app_settings.debug_enabled else None,
        openapi_url="/api/openapi.json" if app_settings.debug_enabled else None,
    )
    app.state.settings = app_settings

    # Added in reverse order of execution: request ID is assigned first
    app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
    app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-API-Key", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=86400,
    )

    register_exception_handlers(app, debug=app_settings.debug_enabled)

    # Probes live at the root, outside /api rate limiting and API keys
    app.include_router(health.router, tags=["health"])
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from progresstracker.logging import get_uvicorn_log_config

    uvicorn.run(
        "progresstracker.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
