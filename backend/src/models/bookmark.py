"""Bookmark model."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.user import User


# Content ids come from an external collaborator (e.g. tweet ObjectIds)
MAX_CONTENT_ID_LENGTH = 64


class UserBookmark(Base):
    """A user's saved reference to an external content item."""

    __tablename__ = "user_bookmarks"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    content_id: Mapped[str] = mapped_column(String(MAX_CONTENT_ID_LENGTH), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    user: Mapped["User"] = relationship(back_populates="bookmark_entries")
