"""Service layer for registration and login."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AuthError, ConflictError, ValidationError
from core.security import (
    MAX_PASSWORD_BYTES,
    SessionToken,
    create_session_token,
    hash_password,
    password_too_long,
    verify_password,
)
from models.user import User
from schemas.user import LoginRequest, RegisterRequest
from services.user_service import get_user_by_email

logger = logging.getLogger(__name__)

ALL_FIELDS_REQUIRED = "All fields are required."
USER_EXISTS = "User already exists."
# Same message for unknown email and wrong password
INVALID_CREDENTIALS = "Incorrect email or password."
PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes."


async def register_user(
    db: AsyncSession,
    data: RegisterRequest,
    hash_rounds: int = 12,
) -> User:
    """
    Create a new account.

    The email pre-check gives a clean 409 in the common case; the UNIQUE
    constraint on users.email catches concurrent registrations that both pass it.
    """
    if not (data.name and data.username and data.email and data.password):
        raise ValidationError(ALL_FIELDS_REQUIRED)

    if password_too_long(data.password):
        raise ValidationError(PASSWORD_TOO_LONG)

    if await get_user_by_email(db, data.email) is not None:
        raise ConflictError(USER_EXISTS)

    user = User(
        name=data.name,
        username=data.username,
        email=data.email,
        password=await hash_password(data.password, rounds=hash_rounds),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        logger.info("registration_conflict", extra={"reason": "unique_violation"})
        raise ConflictError(USER_EXISTS) from e

    logger.info("user_registered", extra={"user_id": user.id})
    return user


async def authenticate_user(
    db: AsyncSession,
    data: LoginRequest,
    token_secret: str,
    token_ttl_seconds: int = 86400,
) -> tuple[User, SessionToken]:
    """Verify credentials and issue a session token for the user."""
    if not (data.email and data.password):
        raise ValidationError(ALL_FIELDS_REQUIRED)

    # Checked before the lookup so the answer does not depend on the email
    if password_too_long(data.password):
        raise ValidationError(PASSWORD_TOO_LONG)

    user = await get_user_by_email(db, data.email)
    if user is None:
        logger.info("login_failed", extra={"reason": "unknown_email"})
        raise AuthError(INVALID_CREDENTIALS)

    if not await verify_password(data.password, user.password):
        logger.info("login_failed", extra={"reason": "bad_password", "user_id": user.id})
        raise AuthError(INVALID_CREDENTIALS)

    token = create_session_token(user.id, token_secret, token_ttl_seconds)
    logger.info("user_logged_in", extra={"user_id": user.id})
    return user, token
