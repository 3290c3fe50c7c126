"""FastAPI dependencies for injection."""
from fastapi import Depends, Request
from redis.asyncio import Redis

from core.config import Settings, get_settings
from core.exceptions import AuthError, ForbiddenError, ValidationError
from core.rate_limit_config import (
    RateLimitExceededError,
    RateLimitResult,
    get_operation_type,
)
from core.rate_limiter import RateLimiter
from core.security import decode_session_token
from db.session import get_async_session
from schemas.user import ActingUserRequest

# Used when the app was not started through its lifespan
_NO_RATE_LIMIT = RateLimiter(None)


def get_redis(request: Request) -> Redis | None:
    """The Redis connection opened at startup, if any."""
    return getattr(request.app.state, "redis", None)


def get_rate_limiter(request: Request) -> RateLimiter:
    """The rate limiter built at startup around the Redis connection."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    return limiter if limiter is not None else _NO_RATE_LIMIT


def get_client_key(request: Request) -> str:
    """
    Identify the caller for rate limiting.

    Behind a trusted proxy ``request.client`` already holds the address from
    X-Forwarded-For (see ``FORWARDED_ALLOW_IPS``); otherwise it is the peer.
    """
    if request.client is None:
        return "unknown"
    return request.client.host


async def check_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RateLimitResult:
    """
    Dependency that enforces rate limits.

    Stores result in request.state for middleware to add headers.
    Raises RateLimitExceededError for 429 responses (handled by exception handler).
    """
    operation_type = get_operation_type(request.method, request.url.path)

    result = await limiter.hit(get_client_key(request), operation_type)

    if not result.allowed:
        raise RateLimitExceededError(result)

    # Store result in request.state for the rate limit headers middleware
    request.state.rate_limit_info = {
        "limit": result.limit,
        "remaining": result.remaining,
        "reset": result.reset,
    }

    return result


def get_session_user_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> int | None:
    """Return the user id from the session cookie, or None if absent/invalid."""
    token = request.cookies.get(settings.cookie_name)
    if not token:
        return None
    return decode_session_token(token, settings.token_secret)


def get_acting_user_id(
    data: ActingUserRequest,
    session_user_id: int | None = Depends(get_session_user_id),
    settings: Settings = Depends(get_settings),
) -> int:
    """
    Resolve the id of the user performing a graph mutation.

    The id comes from the request body. With ``enforce_session`` enabled the
    caller must also hold a valid session cookie for that same user.
    """
    if data.id is None:
        raise ValidationError("User id is required.")

    if settings.enforce_session:
        if session_user_id is None:
            raise AuthError("Not authenticated.")
        if session_user_id != data.id:
            raise ForbiddenError("Cannot act on behalf of another user.")

    return data.id


__all__ = [
    "check_rate_limit",
    "get_acting_user_id",
    "get_async_session",
    "get_rate_limiter",
    "get_redis",
    "get_session_user_id",
    "get_settings",
]
