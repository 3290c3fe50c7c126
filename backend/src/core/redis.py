"""Connection to the Redis server behind rate limiting."""
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.config import Settings

logger = logging.getLogger(__name__)


def redact_url(url: str) -> str:
    """Drop the credentials from a Redis URL so it can be logged."""
    return url.rsplit("@", 1)[-1]


async def open_redis(settings: Settings) -> Redis | None:
    """
    Connect to Redis, or return None when it is disabled or unreachable.

    The API runs without Redis; the rate limiter then lets every request through.
    """
    if not settings.redis_enabled:
        logger.info("redis_disabled")
        return None

    url = redact_url(settings.redis_url)
    client = Redis.from_url(settings.redis_url, max_connections=settings.redis_max_connections)
    try:
        await client.ping()
    except RedisError as e:
        logger.warning("redis_connect_failed", extra={"url": url, "error": str(e)})
        await client.aclose()
        return None

    logger.info("redis_connected", extra={"url": url})
    return client


async def redis_is_up(client: Redis | None) -> bool:
    """Ping Redis; any failure counts as down."""
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except RedisError as e:
        logger.warning("redis_ping_failed", extra={"error": str(e)})
        return False
