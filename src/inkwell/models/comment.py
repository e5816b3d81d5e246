"""SQLAlchemy model for threaded comments."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.db.session import Base
from inkwell.db.time import utcnow

if TYPE_CHECKING:
    from inkwell.models.user import User

DELETED_PLACEHOLDER = "[This comment has been deleted]"
ADMIN_DELETED_PLACEHOLDER = "[This comment has been deleted by admin]"
HIDDEN_PLACEHOLDER = "[This comment has been hidden pending review]"


class Comment(Base):
    """Comment on a post, stored flat with a materialized path.

    ``path`` is the slash-joined chain of ancestor ids ending with the comment's
    own id (``"12/40/41"``), and ``depth`` is the number of ancestors. Subtrees
    are selected by path prefix instead of recursive queries.
    """

    __tablename__ = "comment"
    __table_args__ = (
        Index("ix_comment_post_depth_created", "post_id", "depth", "created_at"),
        Index("ix_comment_path", "path"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        nullable=True,
    )
    path: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reports: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Cleared automatically once reports reach the configured threshold.
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship("User", lazy="joined")

    @property
    def path_prefix(self) -> str:
        """Return the prefix shared by every descendant's path."""
        return f"{self.path}/"


class CommentReport(Base):
    """One user's report against a comment; cleared when a moderator dismisses them."""

    __tablename__ = "comment_report"
    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_report_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
