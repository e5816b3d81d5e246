"""SQLAlchemy models for posts and their tags."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.db.session import Base
from inkwell.db.time import utcnow

if TYPE_CHECKING:
    from inkwell.models.user import User

POST_STATUS_DRAFT = "draft"
POST_STATUS_PUBLISHED = "published"
POST_STATUS_ARCHIVED = "archived"
POST_STATUSES = (POST_STATUS_DRAFT, POST_STATUS_PUBLISHED, POST_STATUS_ARCHIVED)


class Post(Base):
    """Authored article moving through draft, published and archived states.

    Counters are denormalised: the comment service keeps ``comment_count`` in
    step and the like service keeps ``like_count``.
    """

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_status_published_at", "status", "published_at"),
        Index("ix_post_author_status", "author_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Category name, not a foreign key.
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=POST_STATUS_DRAFT)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    seo_meta_title: Mapped[str | None] = mapped_column(String(60), nullable=True)
    seo_meta_description: Mapped[str | None] = mapped_column(String(160), nullable=True)
    seo_canonical_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    seo_og_image: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship("User", lazy="joined")
    tag_rows: Mapped[list[PostTag]] = relationship(
        "PostTag",
        cascade="all, delete-orphan",
        order_by="PostTag.name",
    )

    @property
    def tags(self) -> list[str]:
        """Return the post's tags in alphabetical order."""
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, names: list[str]) -> None:
        wanted = list(dict.fromkeys(name for name in names if name))
        existing = {row.name: row for row in self.tag_rows}
        self.tag_rows = [existing.get(name) or PostTag(name=name) for name in wanted]

    @property
    def is_published(self) -> bool:
        """Return True when the post is publicly visible."""
        return self.status == POST_STATUS_PUBLISHED


class PostTag(Base):
    """Tag attached to a post; a post's tags form a set."""

    __tablename__ = "post_tag"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(String(50), primary_key=True, index=True)
