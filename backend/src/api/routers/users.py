"""User endpoints: registration, sessions, profiles, follows, and bookmarks."""
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    check_rate_limit,
    get_acting_user_id,
    get_async_session,
    get_settings,
)
from core.config import Settings
from schemas.user import (
    MAX_USER_ID,
    BookmarkToggleResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OtherUsersResponse,
    ProfileResponse,
    RegisterRequest,
    UserOut,
)
from services import auth_service, social_service, user_service

# Out-of-range ids fail validation (400) before reaching the database
UserId = Annotated[int, Path(ge=1, le=MAX_USER_ID)]

router = APIRouter(
    prefix="/api/v1/user",
    tags=["user"],
    dependencies=[Depends(check_rate_limit)],
)


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Create an account. Does not log the user in."""
    await auth_service.register_user(db, data, hash_rounds=settings.password_hash_rounds)
    return MessageResponse(message="Account created successfully.")


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Verify credentials and set the session cookie."""
    user, token = await auth_service.authenticate_user(
        db, data, settings.token_secret, settings.token_ttl_seconds,
    )
    response.set_cookie(
        key=settings.cookie_name,
        value=token.value,
        expires=token.expires_at,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return LoginResponse(
        message=f"Welcome back {user.name}",
        user=UserOut.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Clear the session cookie."""
    response.set_cookie(
        key=settings.cookie_name,
        value="",
        expires=datetime.now(UTC),
        max_age=0,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return MessageResponse(message="User logged out successfully.")


@router.post("/bookmark/{content_id}", response_model=BookmarkToggleResponse)
async def bookmark(
    content_id: str,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkToggleResponse:
    """Toggle a content item in the acting user's bookmarks."""
    action = await social_service.toggle_bookmark(db, user_id, content_id)
    message = (
        social_service.BOOKMARK_ADDED if action == "added"
        else social_service.BOOKMARK_REMOVED
    )
    return BookmarkToggleResponse(message=message, action=action)


@router.get("/profile/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: UserId,
    db: AsyncSession = Depends(get_async_session),
) -> ProfileResponse:
    """Get a user's profile (never includes the password)."""
    user = await user_service.get_profile(db, user_id)
    return ProfileResponse(user=UserOut.model_validate(user))


@router.get("/otheruser/{user_id}", response_model=OtherUsersResponse)
@router.get("/users/{user_id}", response_model=OtherUsersResponse, include_in_schema=False)
async def get_other_users(
    user_id: UserId,
    db: AsyncSession = Depends(get_async_session),
) -> OtherUsersResponse:
    """List every user except the given one."""
    users = await user_service.get_other_users(db, user_id)
    return OtherUsersResponse(otherUsers=[UserOut.model_validate(u) for u in users])


@router.post("/follow/{target_id}", response_model=MessageResponse)
async def follow(
    target_id: UserId,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Follow another user."""
    message = await social_service.follow_user(db, user_id, target_id)
    return MessageResponse(message=message)


@router.post("/unfollow/{target_id}", response_model=MessageResponse)
async def unfollow(
    target_id: UserId,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Stop following another user."""
    message = await social_service.unfollow_user(db, user_id, target_id)
    return MessageResponse(message=message)
