"""Tests for the auth service layer."""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AuthError, ConflictError, ValidationError
from core.security import decode_session_token
from schemas.user import LoginRequest, RegisterRequest
from services import auth_service

ALICE = RegisterRequest(name="Alice", username="alice1", email="a@x.com", password="pw123")


async def test__register_user__stores_hash_not_plaintext(db_session: AsyncSession) -> None:
    user = await auth_service.register_user(db_session, ALICE, hash_rounds=4)

    assert user.id is not None
    assert user.password != "pw123"
    assert user.password.startswith("$2")


async def test__register_user__unique_constraint_catches_race(
    db_session: AsyncSession,
) -> None:
    """
    Two registrations that both pass the email pre-check still collide.

    Simulates the check-then-act race by making the pre-check miss.
    """
    await auth_service.register_user(db_session, ALICE, hash_rounds=4)
    await db_session.commit()

    with (
        patch(
            "services.auth_service.get_user_by_email",
            new_callable=AsyncMock,
            return_value=None,
        ),
        pytest.raises(ConflictError) as exc_info,
    ):
        await auth_service.register_user(db_session, ALICE, hash_rounds=4)

    assert exc_info.value.status_code == 409


async def test__register_user__missing_field_raises(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        await auth_service.register_user(
            db_session,
            RegisterRequest(name="Alice", email="a@x.com", password="pw123"),
        )


async def test__authenticate_user__issues_token_for_user(db_session: AsyncSession) -> None:
    created = await auth_service.register_user(db_session, ALICE, hash_rounds=4)

    user, token = await auth_service.authenticate_user(
        db_session,
        LoginRequest(email="a@x.com", password="pw123"),
        token_secret="s3cret",
        token_ttl_seconds=60,
    )

    assert user.id == created.id
    assert decode_session_token(token.value, "s3cret") == created.id


async def test__authenticate_user__bad_credentials_raise_same_error(
    db_session: AsyncSession,
) -> None:
    await auth_service.register_user(db_session, ALICE, hash_rounds=4)

    with pytest.raises(AuthError) as wrong_password:
        await auth_service.authenticate_user(
            db_session, LoginRequest(email="a@x.com", password="bad"), "s3cret",
        )
    with pytest.raises(AuthError) as unknown_email:
        await auth_service.authenticate_user(
            db_session, LoginRequest(email="z@x.com", password="pw123"), "s3cret",
        )

    assert wrong_password.value.message == unknown_email.value.message
