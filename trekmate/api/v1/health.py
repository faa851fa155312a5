"""Health check endpoints."""

import logging

from fastapi import APIRouter, Response, status
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from trekmate.core.database import async_engine
from trekmate.core.redis import ping_redis

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness_check(response: Response) -> dict[str, str]:
    """Readiness check - verifies the database and Redis are reachable."""
    checks = {"database": "ok", "redis": "ok"}

    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Readiness: database unavailable: {e}")
        checks["database"] = "unavailable"

    try:
        await ping_redis()
    except (RedisError, OSError) as e:
        logger.warning(f"Readiness: redis unavailable: {e}")
        checks["redis"] = "unavailable"

    ready = all(v == "ok" for v in checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "ready" if ready else "degraded", **checks}
