import structlog
from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.db.redis_client import get_redis
from accreditation.db.session import get_db

router = APIRouter(tags=["health"])
logger = structlog.get_logger()


@router.get("/health")
async def liveness() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(
    db: AsyncSession = Depends(get_db),
) -> dict[str, object]:
    """Database is required; Redis only backs the statistics cache."""
    checks: dict[str, object] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.error("database_health_check_failed", error=str(e))
        checks["database"] = f"error: {e}"

    try:
        redis = await get_redis()
        await redis.ping()
        checks["redis"] = "ok"
    except (RedisError, OSError) as e:
        logger.warning("redis_health_check_failed", error=str(e))
        checks["redis"] = f"error: {e}"

    if checks["database"] != "ok":
        status = "unavailable"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "ready"
    return {"status": status, "checks": checks}
