"""Health check endpoints."""

from fastapi import APIRouter, Request

from wellspace.config import get_settings
from wellspace.core.database import AsyncCassandraConnection
from wellspace.core.redis import redis_is_healthy


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool | dict[str, bool]]:
    """Readiness check - reports which collaborators are wired in.

    The AI check only tells whether a key is configured; moderation fails
    open without it.
    """
    settings = get_settings()
    checks = {
        "cassandra": AsyncCassandraConnection.is_connected(),
        "redis": await redis_is_healthy(),
        "ai": settings.gemini_configured,
        "community": getattr(request.app.state, "community_service", None) is not None,
        "journal": getattr(request.app.state, "journal_service", None) is not None,
        "chat": getattr(request.app.state, "chat_service", None) is not None,
    }
    return {
        "status": "ready" if checks["community"] else "degraded",
        "environment": settings.environment,
        "checks": checks,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
