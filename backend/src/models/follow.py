"""Follow edge model."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.user import User


class Follow(Base):
    """
    A directed follow edge, stored once and keyed by the pair.

    Following and unfollowing are a single insert/delete of this row, so the
    two sides of the relationship can never disagree.
    """

    __tablename__ = "follows"

    follower_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followee_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    follower: Mapped["User"] = relationship(
        foreign_keys=[follower_id],
        back_populates="following_edges",
    )
    followee: Mapped["User"] = relationship(
        foreign_keys=[followee_id],
        back_populates="follower_edges",
    )
