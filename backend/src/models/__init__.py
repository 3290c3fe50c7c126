"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.bookmark import UserBookmark
from models.follow import Follow
from models.user import User

__all__ = ["Base", "Follow", "TimestampMixin", "User", "UserBookmark"]
