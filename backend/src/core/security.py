"""Password hashing and signed session tokens."""
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes of its input and bcrypt>=5 rejects longer ones
MAX_PASSWORD_BYTES = 72


@dataclass
class SessionToken:
    """An issued session token and the instant it stops being valid."""

    value: str
    expires_at: datetime


def password_too_long(password: str) -> bool:
    """True if the UTF-8 encoded password is more than bcrypt can hash."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def _hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _verify_password(password: str, password_hash: str) -> bool:
    if password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Password length is checked above, so only a malformed stored hash gets here
        logger.warning("invalid_password_hash")
        return False


async def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password with bcrypt.

    bcrypt is deliberately slow, so the work runs in the thread pool instead of
    blocking the event loop.
    """
    return await run_in_threadpool(_hash_password, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    return await run_in_threadpool(_verify_password, password, password_hash)


def create_session_token(
    user_id: int,
    secret: str,
    ttl_seconds: int = 86400,
    now: datetime | None = None,
) -> SessionToken:
    """Sign a token whose subject is the user id."""
    issued_at = now or datetime.now(UTC)
    expires_at = issued_at + timedelta(seconds=ttl_seconds)
    payload = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expires_at,
    }
    value = jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)
    return SessionToken(value=value, expires_at=expires_at)


def decode_session_token(token: str, secret: str) -> int | None:
    """
    Return the user id carried by a session token.

    Returns None for expired, tampered, or otherwise unreadable tokens.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("session_token_expired")
        return None
    except jwt.InvalidTokenError:
        logger.warning("session_token_invalid")
        return None

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        logger.warning("session_token_invalid_subject")
        return None
