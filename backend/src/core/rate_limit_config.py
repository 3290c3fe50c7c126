"""
Rate limiting configuration and types.

This module contains the policy configuration for rate limiting - the "what" limits
to apply, separate from the "how" (enforcement logic in rate_limiter.py).

To adjust rate limits, modify RATE_LIMITS below.
To add new sensitive endpoints, add them to SENSITIVE_ENDPOINTS.
"""
from dataclasses import dataclass
from enum import Enum


class OperationType(Enum):
    """Operation type for rate limiting."""

    READ = "read"
    WRITE = "write"
    SENSITIVE = "sensitive"  # Credential checks and account creation


@dataclass
class RateLimitConfig:
    """Rate limit configuration for a specific operation type."""

    requests_per_minute: int
    requests_per_day: int


@dataclass
class RateLimitResult:
    """Result of a rate limit check with all info needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(Exception):
    """Raised when rate limit is exceeded."""

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__("Rate limit exceeded")


# ---------------------------------------------------------------------------
# Rate Limit Policy Configuration
# ---------------------------------------------------------------------------
# Limits are per client address. Daily caps: general (read/write) vs sensitive
# are tracked separately.

RATE_LIMITS: dict[OperationType, RateLimitConfig] = {
    OperationType.READ: RateLimitConfig(requests_per_minute=180, requests_per_day=4000),
    OperationType.WRITE: RateLimitConfig(requests_per_minute=120, requests_per_day=4000),
    # Slows down password guessing and bulk sign-ups
    OperationType.SENSITIVE: RateLimitConfig(requests_per_minute=10, requests_per_day=200),
}


# ---------------------------------------------------------------------------
# Sensitive Endpoints
# ---------------------------------------------------------------------------
# Format: (HTTP_METHOD, path_without_query_params)

SENSITIVE_ENDPOINTS: set[tuple[str, str]] = {
    ("POST", "/api/v1/user/login"),
    ("POST", "/api/v1/user/register"),
}


def get_operation_type(method: str, path: str) -> OperationType:
    """Determine operation type from HTTP method and path."""
    if (method, path.rstrip("/")) in SENSITIVE_ENDPOINTS:
        return OperationType.SENSITIVE
    if method == "GET":
        return OperationType.READ
    return OperationType.WRITE
