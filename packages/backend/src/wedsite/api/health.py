"""Health check endpoint.

Verifies the server is running and its dependencies (database, Redis)
are reachable. Redis is optional, so its absence only degrades status.
"""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite import __version__
from wedsite.cache import get_redis
from wedsite.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "unavailable"
    except RedisError as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "unhealthy"
    if status == "healthy" and checks["redis"] != "ok":
        status = "degraded"

    return {"status": status, **checks}
