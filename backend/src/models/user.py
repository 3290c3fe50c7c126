"""User model - the account record and its social graph."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.bookmark import UserBookmark
    from models.follow import Follow


class User(Base, TimestampMixin):
    """
    A registered account.

    followers/following/bookmarks are exposed as plain id lists built from the
    edge tables, which are eagerly loaded with the user.
    """

    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    username: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    # bcrypt hash; never serialized (UserOut has no password field)
    password: Mapped[str] = mapped_column(String(255))

    follower_edges: Mapped[list["Follow"]] = relationship(
        foreign_keys="Follow.followee_id",
        back_populates="followee",
        lazy="selectin",
        passive_deletes=True,
    )
    following_edges: Mapped[list["Follow"]] = relationship(
        foreign_keys="Follow.follower_id",
        back_populates="follower",
        lazy="selectin",
        passive_deletes=True,
    )
    bookmark_entries: Mapped[list["UserBookmark"]] = relationship(
        back_populates="user",
        lazy="selectin",
        passive_deletes=True,
    )

    @property
    def followers(self) -> list[int]:
        """Ids of users following this user."""
        return [edge.follower_id for edge in self.follower_edges]

    @property
    def following(self) -> list[int]:
        """Ids of users this user follows."""
        return [edge.followee_id for edge in self.following_edges]

    @property
    def bookmarks(self) -> list[str]:
        """Bookmarked content ids."""
        return [entry.content_id for entry in self.bookmark_entries]
