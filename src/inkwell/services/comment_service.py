"""Threaded comments stored flat with a materialized path.

Every comment row carries ``path`` (ancestor ids joined by ``/``, ending with
its own id) and ``depth``. Threads are read with one prefix query per page of
root comments and assembled in memory, so no recursive queries are needed.
Soft-deleted comments keep their row and path, which keeps replies beneath
them reachable.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import exists, func, or_
from sqlalchemy.orm import Session, aliased

from inkwell.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from inkwell.core.settings import settings
from inkwell.db.time import utcnow
from inkwell.models import Comment, CommentReport, Post
from inkwell.models.comment import (
    ADMIN_DELETED_PLACEHOLDER,
    DELETED_PLACEHOLDER,
    HIDDEN_PLACEHOLDER,
)
from inkwell.models.like import TARGET_COMMENT
from inkwell.schemas.comment import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentSort,
    CommentUpdate,
)
from inkwell.schemas.common import LikeStatus, PaginationMeta
from inkwell.services.cache import CacheService, comments_key, get_cache_service
from inkwell.services.like_service import LikeService
from inkwell.utils.text import sanitize_comment

logger = logging.getLogger(__name__)


def _order_for(sort: CommentSort) -> list:
    if sort == "oldest":
        return [Comment.created_at.asc(), Comment.id.asc()]
    if sort == "popular":
        return [Comment.like_count.desc(), Comment.created_at.desc(), Comment.id.desc()]
    return [Comment.created_at.desc(), Comment.id.desc()]


def _shown_in_listing():
    """Live comments, plus deleted ones that still have live replies beneath them."""
    reply = aliased(Comment)
    has_live_replies = exists().where(
        reply.post_id == Comment.post_id,
        reply.path.like(Comment.path + "/%"),
        reply.is_deleted.is_(False),
    )
    return or_(Comment.is_deleted.is_(False), has_live_replies)


def present(comment: Comment) -> CommentResponse:
    """Serialize a comment for public reads, masking one hidden by reports."""
    response = CommentResponse.model_validate(comment)
    if not comment.is_visible and not comment.is_deleted:
        response.content = HIDDEN_PLACEHOLDER
    return response


def _prune_deleted(node: CommentResponse) -> bool:
    """Drop deleted leaves bottom-up; return True if ``node`` should stay."""
    node.replies = [child for child in node.replies if _prune_deleted(child)]
    return not node.is_deleted or bool(node.replies)


def build_threads(
    roots: Sequence[Comment],
    descendants: Sequence[Comment],
    *,
    include_deleted: bool = False,
) -> list[CommentResponse]:
    """Nest ``descendants`` beneath ``roots`` by parent id.

    ``descendants`` must be in chronological order; replies keep that order.
    Hidden comments stay in place with their content masked so their replies
    remain reachable.
    """
    nodes = {comment.id: present(comment) for comment in roots}
    for comment in descendants:
        nodes[comment.id] = present(comment)
    for comment in descendants:
        parent = nodes.get(comment.parent_id) if comment.parent_id is not None else None
        if parent is not None:
            parent.replies.append(nodes[comment.id])

    threads = [nodes[root.id] for root in roots]
    if not include_deleted:
        threads = [thread for thread in threads if _prune_deleted(thread)]
    return threads


class CommentService:
    """Service for creating, editing, deleting, liking and reporting comments."""

    def __init__(self, db: Session, cache: CacheService | None = None) -> None:
        self.db = db
        self.cache = cache or get_cache_service()
        self.likes = LikeService(db)

    # --- Lookups ------------------------------------------------------------------

    def _get_post(self, post_id: int) -> Post:
        post = self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    def get_comment(self, comment_id: int) -> Comment:
        comment = self.db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    def _descendants(self, post_id: int, roots: Sequence[Comment]) -> list[Comment]:
        if not roots:
            return []
        return (
            self.db.query(Comment)
            .filter(
                Comment.post_id == post_id,
                or_(*(Comment.path.like(f"{root.path}/%") for root in roots)),
            )
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )

    # --- Reads --------------------------------------------------------------------

    def find_by_post(
        self,
        post_id: int,
        *,
        page: int = 1,
        limit: int | None = None,
        sort: CommentSort = "newest",
        include_deleted: bool = False,
    ) -> CommentListResponse:
        """Return one page of root comments with their reply trees."""
        limit = limit or settings.comments_page_size
        self._get_post(post_id)

        cacheable = (
            sort == "newest" and not include_deleted and limit == settings.comments_page_size
        )
        if cacheable:
            cached = self.cache.get(comments_key(post_id, page))
            if cached is not None:
                return CommentListResponse.model_validate(cached)

        query = self.db.query(Comment).filter(Comment.post_id == post_id, Comment.depth == 0)
        if not include_deleted:
            query = query.filter(_shown_in_listing())
        total = query.with_entities(func.count(Comment.id)).scalar() or 0
        roots = query.order_by(*_order_for(sort)).offset((page - 1) * limit).limit(limit).all()

        threads = build_threads(
            roots,
            self._descendants(post_id, roots),
            include_deleted=include_deleted,
        )
        result = CommentListResponse(
            comments=threads,
            meta=PaginationMeta.build(page, limit, int(total)),
        )
        if cacheable:
            self.cache.set(comments_key(post_id, page), result.model_dump(mode="json"))
        return result

    def find_one(self, comment_id: int) -> CommentResponse:
        """Return a comment with its reply tree."""
        comment = self.get_comment(comment_id)
        descendants = (
            self.db.query(Comment)
            .filter(Comment.post_id == comment.post_id, Comment.path.like(f"{comment.path}/%"))
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )
        return build_threads([comment], descendants, include_deleted=True)[0]

    def find_by_user(
        self, user_id: int, page: int = 1, limit: int | None = None
    ) -> tuple[Sequence[Comment], int]:
        limit = limit or settings.comments_page_size
        query = self.db.query(Comment).filter(
            Comment.author_id == user_id, Comment.is_deleted.is_(False)
        )
        total = query.with_entities(func.count(Comment.id)).scalar() or 0
        comments = (
            query.order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return comments, int(total)

    def find_reported(
        self, page: int = 1, limit: int | None = None
    ) -> tuple[Sequence[Comment], int]:
        """Return comments with at least one report, most reported first."""
        limit = limit or settings.comments_page_size
        query = self.db.query(Comment).filter(Comment.reports > 0)
        total = query.with_entities(func.count(Comment.id)).scalar() or 0
        comments = (
            query.order_by(Comment.reports.desc(), Comment.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return comments, int(total)

    # --- Writes -------------------------------------------------------------------

    def create(self, post_id: int, user_id: int, data: CommentCreate) -> Comment:
        """Create a root comment or a reply.

        The comment row and the post's comment counter are written in one
        transaction.
        """
        post = self._get_post(post_id)
        parent: Comment | None = None
        if data.parent_id is not None:
            parent = self.db.get(Comment, data.parent_id)
            if parent is None:
                raise NotFoundError("Parent comment not found")
            if parent.post_id != post.id:
                raise BadRequestError("Parent comment belongs to a different post")
            if parent.depth >= settings.comment_max_depth - 1:
                raise BadRequestError(
                    f"Maximum nesting level ({settings.comment_max_depth}) reached"
                )

        content = sanitize_comment(data.content)
        if not content:
            raise BadRequestError("Comment content is required")

        comment = Comment(
            post_id=post.id,
            author_id=user_id,
            parent_id=parent.id if parent else None,
            depth=parent.depth + 1 if parent else 0,
            content=content,
        )
        self.db.add(comment)
        # The path needs the generated id.
        self.db.flush()
        comment.path = f"{parent.path}/{comment.id}" if parent else str(comment.id)
        post.comment_count += 1
        self.db.commit()
        self.db.refresh(comment)

        self._invalidate(post.id)
        logger.info("User %s commented %s on post %s", user_id, comment.id, post.id)
        return comment

    def update(self, comment_id: int, user_id: int, data: CommentUpdate) -> Comment:
        comment = self.get_comment(comment_id)
        if comment.is_deleted:
            raise BadRequestError("Cannot edit deleted comment")
        if comment.author_id != user_id:
            raise ForbiddenError("You can only edit your own comments")

        content = sanitize_comment(data.content)
        if not content:
            raise BadRequestError("Comment content is required")
        comment.content = content
        comment.is_edited = True
        comment.edited_at = utcnow()
        self.db.commit()
        self.db.refresh(comment)

        self._invalidate(comment.post_id)
        return comment

    def remove(self, comment_id: int, user_id: int) -> Comment:
        """Soft-delete the caller's own comment."""
        comment = self.get_comment(comment_id)
        if comment.is_deleted:
            raise BadRequestError("Comment already deleted")
        if comment.author_id != user_id:
            raise ForbiddenError("You can only delete your own comments")
        return self._soft_delete(comment, DELETED_PLACEHOLDER)

    def remove_as_admin(self, comment_id: int) -> Comment:
        comment = self.get_comment(comment_id)
        if comment.is_deleted:
            raise BadRequestError("Comment already deleted")
        return self._soft_delete(comment, ADMIN_DELETED_PLACEHOLDER)

    def _soft_delete(self, comment: Comment, placeholder: str) -> Comment:
        comment.is_deleted = True
        comment.deleted_at = utcnow()
        comment.content = placeholder
        comment.like_count = 0
        self.likes.delete_for_targets(TARGET_COMMENT, [comment.id])

        post = self.db.get(Post, comment.post_id)
        if post is not None:
            post.comment_count = max(0, post.comment_count - 1)
        self.db.commit()
        self.db.refresh(comment)

        self._invalidate(comment.post_id)
        logger.info("Comment %s soft-deleted", comment.id)
        return comment

    def toggle_like(self, comment_id: int, user_id: int) -> LikeStatus:
        comment = self.get_comment(comment_id)
        status = self.likes.toggle(user_id, TARGET_COMMENT, comment.id)
        self.cache.invalidate_comment_cache(comment.post_id)
        return status

    def report(self, comment_id: int, user_id: int) -> Comment:
        """Record one report per user; hide the comment once the threshold is reached."""
        comment = self.get_comment(comment_id)
        if comment.is_deleted:
            raise BadRequestError("Cannot report a deleted comment")
        already_reported = self.db.query(
            exists().where(
                CommentReport.comment_id == comment.id,
                CommentReport.user_id == user_id,
            )
        ).scalar()
        if already_reported:
            raise ConflictError("You have already reported this comment")

        self.db.add(CommentReport(comment_id=comment.id, user_id=user_id))
        comment.reports += 1
        if comment.reports >= settings.comment_report_threshold and comment.is_visible:
            comment.is_visible = False
            logger.warning(
                "Comment %s hidden after %s reports (last by user %s)",
                comment.id,
                comment.reports,
                user_id,
            )
        self.db.commit()
        self.db.refresh(comment)
        self.cache.invalidate_comment_cache(comment.post_id)
        return comment

    def dismiss_report(self, comment_id: int) -> Comment:
        comment = self.get_comment(comment_id)
        self.db.query(CommentReport).filter(CommentReport.comment_id == comment.id).delete(
            synchronize_session=False
        )
        comment.reports = 0
        comment.is_visible = True
        self.db.commit()
        self.db.refresh(comment)
        self.cache.invalidate_comment_cache(comment.post_id)
        return comment

    def _invalidate(self, post_id: int) -> None:
        self.cache.invalidate_comment_cache(post_id)
        self.cache.invalidate_post_cache(post_id)
