"""
Health Check Router - Cocoa Contest Evaluation Engine
cocoa_contest/routers/health.py

Returns health status of the engine and its optional ranking cache.
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime, timezone

import redis

from cocoa_contest.config import settings
from cocoa_contest.core.dependencies import get_store

router = APIRouter(tags=["Health"])


#  Schemas


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]


class CacheStatsResponse(BaseModel):
    cache_enabled: bool
    redis_connected: bool
    ranking_keys: Optional[int] = None
    memory_used: Optional[str] = None
    error: Optional[str] = None


#  Dependency Health Checks


def check_store() -> str:
    """The in-memory store is healthy whenever it can be read."""
    get_store().list("contests")
    return "healthy"


def check_redis() -> str:
    """Check Redis connection health; a disabled cache is not a failure."""
    if not settings.CACHE_ENABLED:
        return "disabled"
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        client.ping()
        client.close()
        return "healthy"
    except redis.RedisError as e:
        error_msg = str(e)[:100] + "..." if len(str(e)) > 100 else str(e)
        return f"unhealthy: {error_msg}"


#  Routes


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Health check",
    description="Check health of the store and, when enabled, the Redis ranking cache.",
)
async def health_check():
    dependencies = {
        "store": check_store(),
        "redis": check_redis(),
    }
    all_healthy = all(v in ("healthy", "disabled") for v in dependencies.values())

    response = HealthResponse(
        status="healthy" if all_healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        dependencies=dependencies,
    )

    if all_healthy:
        return response
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )


@router.get("/health/redis", summary="Check Redis connection")
async def health_redis():
    result = check_redis()
    return {
        "service": "redis",
        "status": result,
        "is_healthy": result in ("healthy", "disabled"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get(
    "/health/cache/stats",
    response_model=CacheStatsResponse,
    summary="Ranking cache statistics",
)
async def cache_stats() -> CacheStatsResponse:
    from cocoa_contest.services.cache import get_cache

    cache = get_cache()
    if not cache:
        return CacheStatsResponse(
            cache_enabled=settings.CACHE_ENABLED,
            redis_connected=False,
            error=None if not settings.CACHE_ENABLED else "Redis not configured or unreachable",
        )
    try:
        info = cache.client.info()
        keys = sum(1 for _ in cache.client.scan_iter(match="rankings:*"))
    except redis.RedisError as e:
        return CacheStatsResponse(cache_enabled=True, redis_connected=False, error=str(e))
    return CacheStatsResponse(
        cache_enabled=True,
        redis_connected=True,
        ranking_keys=keys,
        memory_used=info.get("used_memory_human"),
    )
