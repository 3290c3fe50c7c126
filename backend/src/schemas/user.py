"""Pydantic schemas for user, auth, and social graph endpoints."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# users.id is a 32-bit INTEGER column
MAX_USER_ID = 2**31 - 1


class RegisterRequest(BaseModel):
    """
    Registration payload.

    Fields are optional at the schema level so a missing field reaches the auth
    service and is reported as a 400 with a single "All fields are required."
    message rather than a per-field validation error.
    """

    name: str | None = None
    username: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    """Login payload."""

    email: str | None = None
    password: str | None = None


class ActingUserRequest(BaseModel):
    """Body carried by graph mutations: the id of the user performing the action."""

    id: int | None = Field(default=None, ge=1, le=MAX_USER_ID)


class UserOut(BaseModel):
    """
    Public representation of a user.

    There is deliberately no password field: every response path that returns a
    user goes through this schema.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    username: str
    email: str
    followers: list[int]
    following: list[int]
    bookmarks: list[str]
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    """Generic success/failure envelope."""

    message: str
    success: bool = True


class LoginResponse(MessageResponse):
    """Login success: greeting plus the logged-in user."""

    user: UserOut


class ProfileResponse(BaseModel):
    """Single user profile."""

    user: UserOut
    success: bool = True


class OtherUsersResponse(BaseModel):
    """All users except the requesting one."""

    otherUsers: list[UserOut]  # noqa: N815 - wire name used by the web client
    success: bool = True


class BookmarkToggleResponse(MessageResponse):
    """Result of a bookmark toggle, including which way it went."""

    action: Literal["added", "removed"]
