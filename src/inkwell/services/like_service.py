"""Likes on posts and comments."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from inkwell.core.errors import BadRequestError, NotFoundError
from inkwell.models import Comment, Like, Post
from inkwell.models.like import TARGET_COMMENT, TARGET_POST
from inkwell.schemas.common import LikeStatus


class LikeService:
    """Service keeping like rows and the denormalised like counters in step."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _target(self, target_type: str, target_id: int) -> Post | Comment:
        if target_type == TARGET_POST:
            post = self.db.get(Post, target_id)
            if post is None:
                raise NotFoundError("Post not found")
            return post
        if target_type == TARGET_COMMENT:
            comment = self.db.get(Comment, target_id)
            if comment is None:
                raise NotFoundError("Comment not found")
            if comment.is_deleted:
                raise BadRequestError("Cannot like a deleted comment")
            return comment
        raise BadRequestError(f"Unsupported like target: {target_type}")

    def _existing(self, user_id: int, target_type: str, target_id: int) -> Like | None:
        return (
            self.db.query(Like)
            .filter(
                Like.user_id == user_id,
                Like.target_type == target_type,
                Like.target_id == target_id,
            )
            .first()
        )

    def _like(self, user_id: int, target_type: str, target_id: int) -> LikeStatus:
        target = self._target(target_type, target_id)
        if self._existing(user_id, target_type, target_id) is not None:
            raise BadRequestError(f"You have already liked this {target_type}")
        self.db.add(Like(user_id=user_id, target_type=target_type, target_id=target_id))
        target.like_count += 1
        self.db.commit()
        return LikeStatus(liked=True, likes_count=target.like_count)

    def _unlike(self, user_id: int, target_type: str, target_id: int) -> LikeStatus:
        target = self._target(target_type, target_id)
        existing = self._existing(user_id, target_type, target_id)
        if existing is None:
            raise BadRequestError(f"You have not liked this {target_type}")
        self.db.delete(existing)
        target.like_count = max(0, target.like_count - 1)
        self.db.commit()
        return LikeStatus(liked=False, likes_count=target.like_count)

    def like_post(self, user_id: int, post_id: int) -> LikeStatus:
        return self._like(user_id, TARGET_POST, post_id)

    def unlike_post(self, user_id: int, post_id: int) -> LikeStatus:
        return self._unlike(user_id, TARGET_POST, post_id)

    def toggle(self, user_id: int, target_type: str, target_id: int) -> LikeStatus:
        """Flip the caller's like on a target and return the resulting state."""
        target = self._target(target_type, target_id)
        existing = self._existing(user_id, target_type, target_id)
        if existing is not None:
            self.db.delete(existing)
            target.like_count = max(0, target.like_count - 1)
            liked = False
        else:
            self.db.add(Like(user_id=user_id, target_type=target_type, target_id=target_id))
            target.like_count += 1
            liked = True
        self.db.commit()
        return LikeStatus(liked=liked, likes_count=target.like_count)

    def is_liked(self, user_id: int, target_type: str, target_id: int) -> bool:
        return self._existing(user_id, target_type, target_id) is not None

    def liked_ids(self, user_id: int, target_type: str, target_ids: Iterable[int]) -> set[int]:
        """Return which of ``target_ids`` the user has liked, in one query."""
        ids = list(target_ids)
        if not ids:
            return set()
        rows = (
            self.db.query(Like.target_id)
            .filter(
                Like.user_id == user_id,
                Like.target_type == target_type,
                Like.target_id.in_(ids),
            )
            .all()
        )
        return {row[0] for row in rows}

    def likes_for(
        self, target_type: str, target_id: int, page: int = 1, limit: int = 20
    ) -> tuple[Sequence[Like], int]:
        """Return who liked a target, newest first, with the total count."""
        self._target_exists(target_type, target_id)
        query = self.db.query(Like).filter(
            Like.target_type == target_type, Like.target_id == target_id
        )
        total = query.with_entities(func.count(Like.id)).scalar() or 0
        likes = (
            query.order_by(Like.created_at.desc(), Like.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return likes, int(total)

    def likes_by_user(
        self, user_id: int, target_type: str | None = None, page: int = 1, limit: int = 20
    ) -> tuple[Sequence[Like], int]:
        query = self.db.query(Like).filter(Like.user_id == user_id)
        if target_type is not None:
            query = query.filter(Like.target_type == target_type)
        total = query.with_entities(func.count(Like.id)).scalar() or 0
        likes = (
            query.order_by(Like.created_at.desc(), Like.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return likes, int(total)

    def _target_exists(self, target_type: str, target_id: int) -> None:
        model = Post if target_type == TARGET_POST else Comment
        if self.db.get(model, target_id) is None:
            raise NotFoundError(f"{target_type.capitalize()} not found")

    def delete_for_targets(self, target_type: str, target_ids: Iterable[int]) -> int:
        """Remove every like on the given targets; the caller commits."""
        ids = list(target_ids)
        if not ids:
            return 0
        return (
            self.db.query(Like)
            .filter(Like.target_type == target_type, Like.target_id.in_(ids))
            .delete(synchronize_session=False)
        )
