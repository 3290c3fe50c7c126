"""
Shared fixtures.

The app runs against an in-memory SQLite database (aiosqlite) with the session
dependency overridden. Redis is disabled unless a test installs the in-memory
stub, which applies the same window rules as the rate limit script.
"""
import os

# Must be set before any application module reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TOKEN_SECRET"] = "test-secret"
os.environ["REDIS_ENABLED"] = "false"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from api.dependencies import get_rate_limiter, get_redis  # noqa: E402
from api.main import app  # noqa: E402
from core.rate_limiter import RateLimiter  # noqa: E402
from db.session import get_async_session  # noqa: E402
from models import Base  # noqa: E402

USER_API = "/api/v1/user"


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database per test, with foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """A session for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def override_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> Generator[None]:
    """Point the app's session dependency at the test database."""
    async def _get_test_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_session: None) -> AsyncGenerator[AsyncClient]:  # noqa: ARG001
    """HTTP client bound to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class StubRedis:
    """
    In-memory stand-in for the Redis calls the API makes.

    ``register_script`` hands back a coroutine that applies the rate limit
    script's rules: a sliding minute log that only records allowed requests,
    and a daily counter. Set ``available = False`` to make every call fail.
    """

    def __init__(self) -> None:
        self.available = True
        self.minute_logs: dict[str, list[int]] = {}
        self.day_counts: dict[str, int] = {}
        # (minute key, day key) of every script call
        self.calls: list[tuple[str, str]] = []

    def register_script(self, script: str) -> Callable[..., Awaitable[list[int]]]:  # noqa: ARG002
        return self._run_rate_limit

    async def _run_rate_limit(self, keys: list[str], args: list[Any]) -> list[int]:
        self._check_available()
        minute_key, day_key = keys
        now, minute_limit, day_limit, _, minute_ms, day_seconds = args
        self.calls.append((minute_key, day_key))

        log = [t for t in self.minute_logs.get(minute_key, []) if t > now - minute_ms]
        self.minute_logs[minute_key] = log
        if len(log) >= minute_limit:
            return [0, 1, len(log), log[0] + minute_ms - now]

        today = self.day_counts.get(day_key, 0)
        if today >= day_limit:
            return [0, 2, today, day_seconds * 1000]

        log.append(now)
        self.day_counts[day_key] = today + 1
        return [1, 1, len(log), minute_ms]

    async def ping(self) -> bool:
        self._check_available()
        return True

    def _check_available(self) -> None:
        if not self.available:
            raise RedisConnectionError("Connection refused")

    @property
    def clients(self) -> set[str]:
        """Client keys seen by the limiter."""
        return {minute_key.split(":")[1] for minute_key, _ in self.calls}


@pytest.fixture
def stub_redis() -> Generator[StubRedis]:
    """Serve the app's Redis dependency and rate limiter from an in-memory stub."""
    stub = StubRedis()
    limiter = RateLimiter(stub)  # type: ignore[arg-type]
    app.dependency_overrides[get_redis] = lambda: stub
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield stub
    app.dependency_overrides.pop(get_redis, None)
    app.dependency_overrides.pop(get_rate_limiter, None)


RegisterUser = Callable[..., Awaitable[int]]


@pytest.fixture
def make_user(client: AsyncClient) -> RegisterUser:
    """Return a helper that registers and logs in a user, returning its id."""
    return lambda *args, **kwargs: register(client, *args, **kwargs)


async def register(
    client: AsyncClient,
    name: str,
    email: str,
    password: str = "pw123",
    username: str | None = None,
) -> int:
    """Register and log in a user; returns the new user's id."""
    response = await client.post(
        f"{USER_API}/register",
        json={
            "name": name,
            "username": username or name.lower(),
            "email": email,
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    response = await client.post(
        f"{USER_API}/login",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()["user"]["id"]
