"""
Integration tests for rate limiting through the HTTP layer.

Redis is replaced by an in-memory stub that follows the rate limit script's
rules, so these tests cover the full flow: HTTP request -> forwarded address
resolution -> rate limit dependency -> headers or 429.
"""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from api.main import app
from conftest import StubRedis
from core.rate_limit_config import RATE_LIMITS, OperationType

USER_API = "/api/v1/user"

SENSITIVE_PER_MINUTE = RATE_LIMITS[OperationType.SENSITIVE].requests_per_minute

LOGIN = {"email": "a@x.com", "password": "pw123"}


async def login_from(client: AsyncClient, address: str) -> int:
    """POST a login as if relayed by the hosting proxy for ``address``."""
    response = await client.post(
        f"{USER_API}/login",
        json=LOGIN,
        headers={"X-Forwarded-For": address},
    )
    return response.status_code


class TestRateLimitHeaders:
    """Tests for rate limit headers on successful responses."""

    async def test__rate_limit_headers__present_on_successful_request(
        self, client: AsyncClient, stub_redis: StubRedis,  # noqa: ARG002
    ) -> None:
        response = await client.post(f"{USER_API}/logout")

        assert response.status_code == 200
        assert "X-RateLimit-Limit" in response.headers
        assert "X-RateLimit-Remaining" in response.headers
        assert "X-RateLimit-Reset" in response.headers

    async def test__rate_limit_headers__login_uses_sensitive_limit(
        self, client: AsyncClient, stub_redis: StubRedis,
    ) -> None:
        response = await client.post(
            f"{USER_API}/login",
            json={"email": "nobody@x.com", "password": "pw"},
        )

        assert response.status_code == 401
        assert stub_redis.calls[0][0].endswith(":sensitive:min")

    async def test__rate_limit_headers__limit_matches_read_operation(
        self, client: AsyncClient, stub_redis: StubRedis,  # noqa: ARG002
    ) -> None:
        response = await client.get(f"{USER_API}/profile/1")

        assert response.status_code == 404
        assert int(response.headers["X-RateLimit-Limit"]) == (
            RATE_LIMITS[OperationType.READ].requests_per_minute
        )
        assert int(response.headers["X-RateLimit-Remaining"]) == (
            RATE_LIMITS[OperationType.READ].requests_per_minute - 1
        )


class TestRateLimitExceeded:
    """Tests for 429 responses."""

    async def test__rate_limit__blocked_login_returns_429(
        self, client: AsyncClient, stub_redis: StubRedis,  # noqa: ARG002
    ) -> None:
        for _ in range(SENSITIVE_PER_MINUTE):
            response = await client.post(f"{USER_API}/login", json=LOGIN)
            assert response.status_code == 401

        response = await client.post(f"{USER_API}/login", json=LOGIN)

        assert response.status_code == 429
        assert 0 < int(response.headers["Retry-After"]) <= 60
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.json() == {
            "message": "Rate limit exceeded. Please try again later.",
            "success": False,
        }

    async def test__rate_limit__without_redis_requests_pass(self, client: AsyncClient) -> None:
        """Redis unavailable means no limiting (fail open)."""
        for _ in range(SENSITIVE_PER_MINUTE + 1):
            response = await client.post(f"{USER_API}/login", json=LOGIN)
            assert response.status_code == 401


class TestForwardedClients:
    """Callers behind the hosting proxy are limited by their own address."""

    async def test__forwarded_clients__have_separate_buckets(
        self, client: AsyncClient, stub_redis: StubRedis,
    ) -> None:
        """One forwarded client using up its quota does not lock out another."""
        for _ in range(SENSITIVE_PER_MINUTE):
            assert await login_from(client, "198.51.100.1") == 401
        assert await login_from(client, "198.51.100.1") == 429

        assert await login_from(client, "198.51.100.2") == 401
        assert stub_redis.clients == {"198.51.100.1", "198.51.100.2"}

    async def test__forwarded_clients__rightmost_untrusted_address_is_used(
        self, client: AsyncClient, stub_redis: StubRedis,
    ) -> None:
        """A caller can prepend any address; the one the proxy appended counts."""
        await login_from(client, "10.9.9.9, 198.51.100.1")
        assert stub_redis.clients == {"198.51.100.1"}

    @pytest.fixture
    async def direct_client(
        self, override_session: None,  # noqa: ARG002
    ) -> AsyncGenerator[AsyncClient]:
        """A client connecting from an address that is not a trusted proxy."""
        transport = ASGITransport(app=app, client=("203.0.113.9", 40000))
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    async def test__forwarded_header__ignored_from_untrusted_peer(
        self, direct_client: AsyncClient, stub_redis: StubRedis,
    ) -> None:
        """A direct caller cannot pick its own bucket by sending X-Forwarded-For."""
        await login_from(direct_client, "198.51.100.1")
        await login_from(direct_client, "198.51.100.2")

        assert stub_redis.clients == {"203.0.113.9"}
