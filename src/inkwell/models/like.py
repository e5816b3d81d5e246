"""Models capturing likes on posts and comments."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.db.session import Base
from inkwell.db.time import utcnow

if TYPE_CHECKING:
    from inkwell.models.user import User

TARGET_POST = "post"
TARGET_COMMENT = "comment"
LIKE_TARGETS = (TARGET_POST, TARGET_COMMENT)


class Like(Base):
    """Per-user like on a post or a comment."""

    __tablename__ = "post_like"
    __table_args__ = (
        # One like per user and target.
        UniqueConstraint("user_id", "target_id", "target_type", name="uq_like_user_target"),
        CheckConstraint("target_type IN ('post', 'comment')", name="ck_like_target_type"),
        Index("ix_like_target", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Polymorphic reference, so no foreign key.
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_type: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    user: Mapped[User] = relationship("User", lazy="joined")
