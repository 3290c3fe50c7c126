"""Liveness of the API and the services it depends on."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_redis
from core.redis import redis_is_up

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    database: str
    redis: str


async def database_is_up(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("database_health_check_failed")
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    redis: Redis | None = Depends(get_redis),
) -> HealthResponse:
    """
    Report whether the database and Redis answer.

    Only the database decides the overall status: without Redis the rate
    limiter lets requests through, so the API keeps working.
    """
    database_ok = await database_is_up(db)
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        database="healthy" if database_ok else "unhealthy",
        redis="connected" if await redis_is_up(redis) else "unavailable",
    )
