"""Health check endpoints."""

from fastapi import APIRouter, Request

from src.config import get_settings
from src.core.database import AsyncCassandraConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - reports the state of storage and background work."""
    scheduler = getattr(request.app.state, "digest_scheduler", None)
    cassandra_ok = AsyncCassandraConnection.is_connected()
    return {
        "status": "ready" if cassandra_ok else "degraded",
        "cassandra": cassandra_ok,
        "redis": get_redis() is not None,
        "digest_scheduler": bool(scheduler and scheduler.is_running),
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
