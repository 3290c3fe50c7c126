"""FastAPI application factory and the module-level app served by uvicorn."""
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from api.routers import health, users
from core.config import Settings, get_settings
from core.exceptions import AppError
from core.rate_limit_config import RateLimitExceededError
from core.rate_limiter import RateLimiter
from core.redis import open_redis
from db.session import dispose_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open Redis and build the rate limiter; on shutdown release Redis and the DB pool."""
    redis = await open_redis(app.state.settings)
    app.state.redis = redis
    app.state.rate_limiter = RateLimiter(redis)
    logger.info("app_started", extra={"rate_limiting": redis is not None})

    yield

    app.state.rate_limiter = None
    app.state.redis = None
    if redis is not None:
        await redis.aclose()
        logger.info("redis_closed")
    await dispose_engine()
    logger.info("app_stopped")


def error_response(status_code: int, message: str) -> JSONResponse:
    """Render an error in the shape the web client expects."""
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "success": False},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:  # noqa: ARG001
    """Render domain errors raised by the services."""
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed bodies and path params are client errors (400)."""
    logger.info(
        "request_validation_failed",
        extra={"path": request.url.path, "errors": len(exc.errors())},
    )
    return error_response(400, "Invalid request.")


async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:  # noqa: ARG001
    """Return 429 with the headers a client needs to back off."""
    response = error_response(429, "Rate limit exceeded. Please try again later.")
    response.headers["Retry-After"] = str(exc.result.retry_after)
    response.headers["X-RateLimit-Limit"] = str(exc.result.limit)
    response.headers["X-RateLimit-Remaining"] = str(exc.result.remaining)
    response.headers["X-RateLimit-Reset"] = str(exc.result.reset)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    """Log unexpected failures server side; never leak details to the client."""
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return error_response(500, "Internal server error.")


async def rate_limit_headers(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Copy the rate limit info stored by check_rate_limit onto the response."""
    response = await call_next(request)
    info = getattr(request.state, "rate_limit_info", None)
    if info:
        response.headers["X-RateLimit-Limit"] = str(info["limit"])
        response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
        response.headers["X-RateLimit-Reset"] = str(info["reset"])
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the API.

    Logging is configured here at ``LOG_LEVEL``. The last middleware added runs
    first, so forwarded client addresses are resolved before anything else
    (rate limiting included) looks at ``request.client``.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Social API",
        description="Accounts, sessions, follows, and bookmarks for the social web client.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(rate_limit_headers)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(users.router)
    return app


app = create_app()
