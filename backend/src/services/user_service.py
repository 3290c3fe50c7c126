"""Service layer for user lookups and profile queries."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from models.user import User


USER_NOT_FOUND = "User not found."
NO_OTHER_USERS = "Currently do not have any users."


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Load a user (with graph and bookmarks) by id."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Load a user by email."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, user_id: int) -> User:
    """Load a user by id, raising NotFoundError if absent."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


async def get_profile(db: AsyncSession, user_id: int) -> User:
    """Return a single user's profile."""
    return await require_user(db, user_id)


async def get_other_users(db: AsyncSession, exclude_user_id: int) -> list[User]:
    """
    Return every user except ``exclude_user_id``, ordered by id.

    An empty result is reported as NotFoundError, matching the web client's
    expectation that an empty directory is an error state.
    """
    result = await db.execute(
        select(User).where(User.id != exclude_user_id).order_by(User.id),
    )
    users = list(result.scalars().all())
    if not users:
        raise NotFoundError(NO_OTHER_USERS)
    return users
