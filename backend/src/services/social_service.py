"""
Service layer for the social graph: follow/unfollow and bookmark toggling.

Each mutation touches exactly one row (a follow edge or a bookmark entry), so
it commits or fails as a unit with the request's session.
"""
import logging
from typing import Literal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, ValidationError
from models.bookmark import MAX_CONTENT_ID_LENGTH, UserBookmark
from models.follow import Follow
from services.user_service import require_user

logger = logging.getLogger(__name__)

BOOKMARK_ADDED = "Saved to bookmarks."
BOOKMARK_REMOVED = "Removed from bookmarks."


async def _get_follow(db: AsyncSession, follower_id: int, followee_id: int) -> Follow | None:
    result = await db.execute(
        select(Follow).where(
            Follow.follower_id == follower_id,
            Follow.followee_id == followee_id,
        ),
    )
    return result.scalar_one_or_none()


async def toggle_bookmark(
    db: AsyncSession,
    user_id: int,
    content_id: str,
) -> Literal["added", "removed"]:
    """
    Add ``content_id`` to the user's bookmarks, or remove it if already there.

    The content id is not checked against the content store.
    """
    if not content_id or len(content_id) > MAX_CONTENT_ID_LENGTH:
        raise ValidationError("Invalid content id.")

    await require_user(db, user_id)

    result = await db.execute(
        select(UserBookmark).where(
            UserBookmark.user_id == user_id,
            UserBookmark.content_id == content_id,
        ),
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        await db.delete(existing)
        await db.flush()
        logger.info("bookmark_removed", extra={"user_id": user_id, "content_id": content_id})
        return "removed"

    db.add(UserBookmark(user_id=user_id, content_id=content_id))
    await db.flush()
    logger.info("bookmark_added", extra={"user_id": user_id, "content_id": content_id})
    return "added"


async def follow_user(db: AsyncSession, user_id: int, target_id: int) -> str:
    """Make ``user_id`` follow ``target_id``. Returns the confirmation message."""
    target = await require_user(db, target_id)
    user = await require_user(db, user_id)

    if user.id == target.id:
        raise ValidationError("You cannot follow yourself.")

    already_followed = ConflictError(f"User already followed {target.name}", status_code=400)
    if await _get_follow(db, user.id, target.id) is not None:
        raise already_followed

    db.add(Follow(follower_id=user.id, followee_id=target.id))
    try:
        await db.flush()
    except IntegrityError as e:
        # A concurrent request created the same edge first
        raise already_followed from e

    logger.info("user_followed", extra={"user_id": user.id, "target_id": target.id})
    return f"{user.name} just followed {target.name}"


async def unfollow_user(db: AsyncSession, user_id: int, target_id: int) -> str:
    """Remove the ``user_id`` -> ``target_id`` edge. Returns the confirmation message."""
    target = await require_user(db, target_id)
    user = await require_user(db, user_id)

    edge = await _get_follow(db, user.id, target.id)
    if edge is None:
        raise ConflictError("User has not followed yet", status_code=400)

    await db.delete(edge)
    await db.flush()

    logger.info("user_unfollowed", extra={"user_id": user.id, "target_id": target.id})
    return f"{user.name} unfollowed {target.name}"
