"""
Health check endpoints.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError

from datalive.core.config import settings
from datalive.db import check_database_health

router = APIRouter()


async def check_redis_health() -> bool:
    redis = Redis.from_url(str(settings.redis_url), socket_connect_timeout=1, socket_timeout=1)
    try:
        return bool(await redis.ping())
    except (RedisError, OSError):
        return False
    finally:
        await redis.aclose()


@router.get("/api/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "healthy"}


@router.get("/api/ready")
async def readiness_check() -> JSONResponse:
    """Readiness check - database is required, redis only degrades background analysis."""
    database_ok = await check_database_health()
    redis_ok = await check_redis_health()
    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "ready" if database_ok else "unavailable",
            "database": "connected" if database_ok else "disconnected",
            "redis": "connected" if redis_ok else "disconnected",
        },
    )
