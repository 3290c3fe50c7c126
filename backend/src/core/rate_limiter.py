"""
Per-client rate limiting backed by Redis.

A single Lua script checks both windows for a request and records it only if
both have room, so a rejected request never uses up quota. The minute window
is a sorted-set log of request timestamps (sliding); the day window is a plain
counter that expires a day after the first request (fixed).
"""
import logging
import math
import time
import uuid

from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.rate_limit_config import (
    RATE_LIMITS,
    OperationType,
    RateLimitConfig,
    RateLimitResult,
)

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000
DAY_SECONDS = 86_400

# Which window a script reply refers to
MINUTE_WINDOW = 1
DAY_WINDOW = 2

# KEYS: minute log, day counter
# ARGV: now (ms), minute limit, day limit, request id, minute length (ms), day length (s)
# Reply: {allowed, window, used, wait_ms}
RATE_LIMIT_SCRIPT = """
local now = tonumber(ARGV[1])
local minute_limit = tonumber(ARGV[2])
local day_limit = tonumber(ARGV[3])
local minute_ms = tonumber(ARGV[5])

redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', now - minute_ms)
local in_minute = redis.call('ZCARD', KEYS[1])
if in_minute >= minute_limit then
    local oldest = redis.call('ZRANGE', KEYS[1], 0, 0, 'WITHSCORES')
    return {0, 1, in_minute, tonumber(oldest[2]) + minute_ms - now}
end

local today = tonumber(redis.call('GET', KEYS[2]) or '0')
if today >= day_limit then
    return {0, 2, today, redis.call('PTTL', KEYS[2])}
end

redis.call('ZADD', KEYS[1], now, ARGV[4])
redis.call('PEXPIRE', KEYS[1], minute_ms)
if redis.call('INCR', KEYS[2]) == 1 then
    redis.call('EXPIRE', KEYS[2], tonumber(ARGV[6]))
end
return {1, 1, in_minute + 1, minute_ms}
"""


def rate_limit_keys(client_key: str, operation_type: OperationType) -> tuple[str, str]:
    """
    Redis keys for a client's minute log and day counter.

    Reads and writes share one daily pool; login and register get their own.
    """
    daily_pool = "sensitive" if operation_type == OperationType.SENSITIVE else "general"
    return (
        f"rate:{client_key}:{operation_type.value}:min",
        f"rate:{client_key}:daily:{daily_pool}",
    )


class RateLimiter:
    """
    Rate limiter bound to one Redis connection.

    Built with ``None`` (Redis disabled or unreachable at startup) it allows
    every request. A Redis error during a check also lets the request through.
    """

    def __init__(
        self,
        redis: Redis | None,
        limits: dict[OperationType, RateLimitConfig] = RATE_LIMITS,
    ) -> None:
        self._limits = limits
        self._script = redis.register_script(RATE_LIMIT_SCRIPT) if redis is not None else None

    @property
    def enabled(self) -> bool:
        return self._script is not None

    async def hit(self, client_key: str, operation_type: OperationType) -> RateLimitResult:
        """Record a request from ``client_key`` if its limits allow it."""
        config = self._limits[operation_type]
        now_ms = int(time.time() * 1000)

        if self._script is None:
            return self._unlimited(config, now_ms)

        minute_key, day_key = rate_limit_keys(client_key, operation_type)
        try:
            allowed, window, used, wait_ms = await self._script(
                keys=[minute_key, day_key],
                args=[
                    now_ms,
                    config.requests_per_minute,
                    config.requests_per_day,
                    uuid.uuid4().hex,
                    MINUTE_MS,
                    DAY_SECONDS,
                ],
            )
        except RedisError as e:
            logger.warning(
                "rate_limit_check_failed",
                extra={"operation": operation_type.value, "error": str(e)},
            )
            return self._unlimited(config, now_ms)

        if window == DAY_WINDOW:
            limit, window_ms = config.requests_per_day, DAY_SECONDS * 1000
        else:
            limit, window_ms = config.requests_per_minute, MINUTE_MS
        # PTTL is negative when the key has no expiry
        wait_seconds = math.ceil((wait_ms if wait_ms > 0 else window_ms) / 1000)

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                extra={
                    "client": client_key,
                    "operation": operation_type.value,
                    "window": "day" if window == DAY_WINDOW else "minute",
                },
            )
        return RateLimitResult(
            allowed=bool(allowed),
            limit=limit,
            remaining=max(0, limit - used),
            reset=now_ms // 1000 + wait_seconds,
            retry_after=0 if allowed else wait_seconds,
        )

    @staticmethod
    def _unlimited(config: RateLimitConfig, now_ms: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=config.requests_per_minute,
            remaining=config.requests_per_minute,
            reset=now_ms // 1000 + MINUTE_MS // 1000,
            retry_after=0,
        )
