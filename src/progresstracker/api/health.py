"""Health check endpoints."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from progresstracker import __version__
from progresstracker.api.deps import ContainerDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(container: ContainerDep):
    """Basic health check - just confirms the service is running."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime": container.uptime,
        "environment": container.settings.environment,
    }


@router.get("/liveness", response_class=PlainTextResponse)
async def liveness_check():
    """Liveness probe."""
    return "OK"


@router.get("/readiness")
async def readiness_check(container: ContainerDep):
    """Readiness check - confirms the dependencies login needs are available.

    Returns 503 if the email service is not configured. A missing Redis only
    degrades the instance since the local cache takes over.
    """
    checks = {
        "server": True,
        "redis": await container.cache.ping(),
        "email_service": container.provider.is_configured,
    }

    critical_ok = checks["server"] and checks["email_service"]
    if not critical_ok:
        logger.warning(f"Readiness check failed: {checks}")
        return JSONResponse(status_code=503, content={"status": "not ready", "checks": checks})

    status = "ready" if all(checks.values()) else "degraded"
    return {"status": status, "checks": checks}


@router.get("/status")
async def status_check(container: ContainerDep):
    """Detailed status of the application and its dependencies."""
    settings = container.settings
    return {
        "application": {
            "name": "Progress Tracker Backend",
            "version": __version__,
            "environment": settings.environment,
            "uptime": container.uptime,
        },
        "services": {
            "cache": {
                "backend": container.cache.backend,
                "redis_connected": await container.cache.ping(),
                "redis_url": "configured" if settings.redis_url else "not configured",
            },
            "email": {
                "url": container.provider.base_url,
                "configured": container.provider.is_configured,
            },
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }
