"""Post authoring, publishing workflow, listing and search."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Query, Session

from inkwell.core.errors import BadRequestError, ForbiddenError, NotFoundError
from inkwell.core.settings import settings
from inkwell.db.time import utcnow
from inkwell.models import Comment, CommentReport, Post, PostTag, PostView, User
from inkwell.models.like import TARGET_COMMENT, TARGET_POST
from inkwell.models.post import (
    POST_STATUS_ARCHIVED,
    POST_STATUS_DRAFT,
    POST_STATUS_PUBLISHED,
)
from inkwell.schemas.post import (
    CategoryCount,
    PostCreate,
    PostFilters,
    PostListResponse,
    PostResponse,
    PostStats,
    PostUpdate,
    SearchFilters,
    SearchSuggestion,
    TagCount,
)
from inkwell.schemas.common import PaginationMeta
from inkwell.services.cache import CacheService, get_cache_service, post_list_key
from inkwell.services.category_service import CategoryService
from inkwell.services.like_service import LikeService
from inkwell.utils.text import count_words, make_excerpt, reading_time, slugify, title_case

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "published_at": Post.published_at,
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "title": Post.title,
    "views": Post.view_count,
    "likes": Post.like_count,
}

# Relevance weight of a term found in each field.
TITLE_WEIGHT = 10
TAG_WEIGHT = 5
EXCERPT_WEIGHT = 3
CONTENT_WEIGHT = 1

MAX_SEARCH_TERMS = 10
MAX_SUGGESTIONS = 5
TAG_COUNT_LIMIT = 50

# Static segments under /posts that a slug of the same name could never reach.
RESERVED_SLUGS = frozenset({"mine", "drafts", "trending", "categories", "tags"})


def _contains(column: Any, term: str) -> Any:
    """Case-insensitive substring match with LIKE wildcards escaped."""
    return func.lower(column).contains(term.lower(), autoescape=True)


def _search_terms(query: str) -> list[str]:
    terms = [term for term in re.split(r"\s+", query.strip().lower()) if term]
    return list(dict.fromkeys(terms))[:MAX_SEARCH_TERMS]


def _tag_matches(term: str) -> Any:
    return Post.tag_rows.any(PostTag.name.contains(term.lower(), autoescape=True))


def _text_match(term: str) -> Any:
    return or_(
        _contains(Post.title, term),
        _contains(Post.content, term),
        _contains(func.coalesce(Post.excerpt, ""), term),
        _tag_matches(term),
    )


class PostService:
    """Service for posts and their denormalised counters."""

    def __init__(self, db: Session, cache: CacheService | None = None) -> None:
        self.db = db
        self.cache = cache or get_cache_service()
        self.categories = CategoryService(db)
        self.likes = LikeService(db)

    # --- Helpers ------------------------------------------------------------------

    def _published(self) -> Query[Post]:
        return self.db.query(Post).filter(Post.status == POST_STATUS_PUBLISHED)

    def _unique_slug(self, title: str, exclude_id: int | None = None) -> str:
        base = slugify(title) or "post"
        slug, suffix = (f"{base}-1", 2) if base in RESERVED_SLUGS else (base, 1)
        while True:
            query = self.db.query(Post.id).filter(Post.slug == slug)
            if exclude_id is not None:
                query = query.filter(Post.id != exclude_id)
            if query.first() is None:
                return slug
            slug = f"{base}-{suffix}"
            suffix += 1

    @staticmethod
    def _apply_content(post: Post, content: str) -> None:
        post.content = content
        post.word_count = count_words(content)
        post.read_time = reading_time(post.word_count)

    @staticmethod
    def _apply_seo(post: Post, seo: dict[str, Any] | None) -> None:
        if not seo:
            return
        for key, value in seo.items():
            setattr(post, f"seo_{key}", value)

    def _require_owner(self, post: Post, user: User, action: str) -> None:
        if post.author_id != user.id:
            raise ForbiddenError(f"You can only {action} your own posts")

    # --- Lookups ------------------------------------------------------------------

    def get(self, post_id: int) -> Post:
        post = self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    def get_visible(self, post_id: int, viewer: User | None = None) -> Post:
        """Return a post if it is published or the viewer is its author."""
        post = self.get(post_id)
        if not post.is_published and (viewer is None or viewer.id != post.author_id):
            raise NotFoundError("Post not found")
        return post

    def get_by_slug(self, slug: str, viewer: User | None = None) -> Post:
        """Return a post by slug, counting a view when it is published."""
        post = self.db.query(Post).filter(Post.slug == slug).first()
        if post is None or (
            not post.is_published and (viewer is None or viewer.id != post.author_id)
        ):
            raise NotFoundError("Post not found")
        if post.is_published:
            post.view_count += 1
            self.db.commit()
            self.db.refresh(post)
        return post

    # --- Writes -------------------------------------------------------------------

    def create(self, author: User, data: PostCreate) -> Post:
        payload = data.model_dump(mode="json")
        post = Post(
            title=data.title.strip(),
            slug=self._unique_slug(data.title),
            excerpt=data.excerpt or make_excerpt(data.content),
            cover_image=payload["cover_image"],
            author_id=author.id,
            category=title_case(data.category) if data.category else None,
            status=data.status,
            featured=data.featured,
        )
        self._apply_content(post, data.content)
        self._apply_seo(post, payload["seo"])
        post.tags = data.tags
        if data.status == POST_STATUS_PUBLISHED:
            post.published_at = utcnow()

        self.db.add(post)
        self.categories.update_post_count(post.category, 1)
        self.db.commit()
        self.db.refresh(post)

        self.cache.invalidate_post_cache(post.id)
        logger.info("User %s created post %s (%s)", author.id, post.id, post.status)
        return post

    def update(self, post_id: int, user: User, data: PostUpdate) -> Post:
        post = self.get(post_id)
        self._require_owner(post, user, "edit")
        changes = data.model_dump(exclude_unset=True, mode="json")

        if changes.get("title"):
            post.title = changes["title"].strip()
            post.slug = self._unique_slug(post.title, exclude_id=post.id)
        if changes.get("content"):
            self._apply_content(post, changes["content"])
        if "excerpt" in changes:
            post.excerpt = changes["excerpt"] or make_excerpt(post.content)
        if "cover_image" in changes:
            post.cover_image = changes["cover_image"]
        if "category" in changes:
            category = title_case(changes["category"]) if changes["category"] else None
            if category != post.category:
                self.categories.update_post_count(post.category, -1)
                self.categories.update_post_count(category, 1)
                post.category = category
        if changes.get("tags") is not None:
            post.tags = changes["tags"]
        if changes.get("featured") is not None:
            post.featured = changes["featured"]
        if "seo" in changes:
            self._apply_seo(post, changes["seo"])
        if changes.get("status"):
            post.status = changes["status"]
            if post.status == POST_STATUS_PUBLISHED and post.published_at is None:
                post.published_at = utcnow()

        self.db.commit()
        self.db.refresh(post)
        self.cache.invalidate_post_cache(post.id)
        return post

    def remove(self, post_id: int, user: User) -> None:
        """Delete a post with its comments, their reports, tracked views and every related like."""
        post = self.get(post_id)
        self._require_owner(post, user, "delete")

        comment_ids = [
            row[0] for row in self.db.query(Comment.id).filter(Comment.post_id == post.id).all()
        ]
        self.likes.delete_for_targets(TARGET_COMMENT, comment_ids)
        self.likes.delete_for_targets(TARGET_POST, [post.id])
        if comment_ids:
            self.db.query(CommentReport).filter(CommentReport.comment_id.in_(comment_ids)).delete(
                synchronize_session=False
            )
        self.db.query(PostView).filter(PostView.post_id == post.id).delete(synchronize_session=False)
        self.db.query(Comment).filter(Comment.post_id == post.id).delete(
            synchronize_session=False
        )
        self.categories.update_post_count(post.category, -1)
        self.db.delete(post)
        self.db.commit()

        self.cache.invalidate_post_cache(post_id)
        self.cache.invalidate_comment_cache(post_id)
        logger.info("User %s deleted post %s with %s comments", user.id, post_id, len(comment_ids))

    def _transition(self, post_id: int, user: User, allowed_from: set[str], target: str) -> Post:
        post = self.get(post_id)
        self._require_owner(post, user, "modify")
        if post.status not in allowed_from:
            raise BadRequestError(f"Cannot change a {post.status} post to {target}")
        post.status = target
        if target == POST_STATUS_PUBLISHED and post.published_at is None:
            post.published_at = utcnow()
        self.db.commit()
        self.db.refresh(post)
        self.cache.invalidate_post_cache(post.id)
        return post

    def publish(self, post_id: int, user: User) -> Post:
        return self._transition(
            post_id, user, {POST_STATUS_DRAFT, POST_STATUS_ARCHIVED}, POST_STATUS_PUBLISHED
        )

    def archive(self, post_id: int, user: User) -> Post:
        return self._transition(post_id, user, {POST_STATUS_PUBLISHED}, POST_STATUS_ARCHIVED)

    def unarchive(self, post_id: int, user: User) -> Post:
        return self._transition(post_id, user, {POST_STATUS_ARCHIVED}, POST_STATUS_PUBLISHED)

    # --- Listing ------------------------------------------------------------------

    def list_published(self, filters: PostFilters) -> tuple[Sequence[Post], int]:
        query = self._published()
        if filters.search:
            query = query.filter(or_(*(_text_match(term) for term in _search_terms(filters.search))))
        if filters.category:
            query = query.filter(func.lower(Post.category) == filters.category.strip().lower())
        if filters.tags:
            tags = [tag.strip().lower() for tag in filters.tags if tag.strip()]
            query = query.filter(Post.tag_rows.any(PostTag.name.in_(tags)))
        if filters.author_id is not None:
            query = query.filter(Post.author_id == filters.author_id)
        if filters.featured is not None:
            query = query.filter(Post.featured.is_(filters.featured))

        total = query.with_entities(func.count(Post.id)).scalar() or 0
        column = SORT_COLUMNS[filters.sort_by]
        order = column.asc() if filters.sort_order == "asc" else column.desc()
        tie = Post.id.asc() if filters.sort_order == "asc" else Post.id.desc()
        posts = (
            query.order_by(order, tie)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return posts, int(total)

    def listing(self, filters: PostFilters) -> PostListResponse:
        """Return a page of published posts; the default listing is cached."""
        key = None
        if filters.is_default_listing() and filters.limit == settings.posts_page_size:
            key = post_list_key({"page": filters.page, "limit": filters.limit})
            cached = self.cache.get(key)
            if cached is not None:
                return PostListResponse.model_validate(cached)

        posts, total = self.list_published(filters)
        result = PostListResponse(
            posts=[PostResponse.model_validate(post) for post in posts],
            meta=PaginationMeta.build(filters.page, filters.limit, total),
        )
        if key is not None:
            self.cache.set(key, result.model_dump(mode="json"))
        return result

    def list_for_author(
        self,
        author_id: int,
        *,
        status: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[Sequence[Post], int]:
        """Return an author's posts in any status, most recently updated first."""
        limit = limit or settings.posts_page_size
        query = self.db.query(Post).filter(Post.author_id == author_id)
        if status is not None:
            query = query.filter(Post.status == status)
        total = query.with_entities(func.count(Post.id)).scalar() or 0
        posts = (
            query.order_by(Post.updated_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return posts, int(total)

    def drafts(self, author_id: int, page: int = 1, limit: int | None = None) -> tuple[Sequence[Post], int]:
        return self.list_for_author(author_id, status=POST_STATUS_DRAFT, page=page, limit=limit)

    def related(self, post_id: int, limit: int = 3) -> Sequence[Post]:
        """Published posts sharing the category or a tag, most viewed first."""
        post = self.get(post_id)
        conditions = []
        if post.category:
            conditions.append(func.lower(Post.category) == post.category.lower())
        if post.tags:
            conditions.append(Post.tag_rows.any(PostTag.name.in_(post.tags)))
        if not conditions:
            return []
        return (
            self._published()
            .filter(Post.id != post.id, or_(*conditions))
            .order_by(Post.view_count.desc(), Post.published_at.desc(), Post.id.desc())
            .limit(limit)
            .all()
        )

    def trending(self, limit: int = 10) -> Sequence[Post]:
        return (
            self._published()
            .order_by(Post.view_count.desc(), Post.like_count.desc(), Post.id.desc())
            .limit(limit)
            .all()
        )

    # --- Search -------------------------------------------------------------------

    def search(
        self, filters: SearchFilters
    ) -> tuple[Sequence[Post], int, list[SearchSuggestion]]:
        """Search published posts by term with weighted relevance.

        Returns:
            ``(posts, total, suggestions)``; suggestions are only computed
            when nothing matched.
        """
        terms = _search_terms(filters.q)
        if not terms:
            raise BadRequestError("Search query is required")

        score = sum(
            (
                case((_contains(Post.title, term), TITLE_WEIGHT), else_=0)
                + case((_tag_matches(term), TAG_WEIGHT), else_=0)
                + case((_contains(func.coalesce(Post.excerpt, ""), term), EXCERPT_WEIGHT), else_=0)
                + case((_contains(Post.content, term), CONTENT_WEIGHT), else_=0)
                for term in terms
            ),
            start=0,
        ).label("score")

        query = self._published().filter(or_(*(_text_match(term) for term in terms)))
        if filters.category:
            query = query.filter(func.lower(Post.category) == filters.category.strip().lower())
        if filters.tags:
            query = query.filter(
                Post.tag_rows.any(PostTag.name.in_([tag.lower() for tag in filters.tags]))
            )
        if filters.author_id is not None:
            query = query.filter(Post.author_id == filters.author_id)

        total = int(query.with_entities(func.count(Post.id)).scalar() or 0)
        if filters.sort_by == "date":
            ordering = [Post.published_at.desc(), Post.id.desc()]
        elif filters.sort_by == "popularity":
            ordering = [Post.like_count.desc(), Post.view_count.desc(), Post.id.desc()]
        else:
            ordering = [score.desc(), Post.view_count.desc(), Post.id.desc()]

        rows = (
            query.add_columns(score)
            .order_by(*ordering)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        posts = [row[0] for row in rows]

        suggestions: list[SearchSuggestion] = []
        if total == 0:
            suggestions = self.suggestions(filters.q)
        return posts, total, suggestions

    def suggestions(self, query: str) -> list[SearchSuggestion]:
        """Published posts whose title, tags or category contain ``query``."""
        needle = query.strip()
        if not needle:
            return []
        rows = (
            self.db.query(Post.title, Post.slug)
            .filter(
                Post.status == POST_STATUS_PUBLISHED,
                or_(
                    _contains(Post.title, needle),
                    _contains(func.coalesce(Post.category, ""), needle),
                    _tag_matches(needle),
                ),
            )
            .order_by(Post.view_count.desc(), Post.id.desc())
            .limit(MAX_SUGGESTIONS)
            .all()
        )
        return [SearchSuggestion(title=title, slug=slug) for title, slug in rows]

    # --- Aggregates ---------------------------------------------------------------

    def category_counts(self) -> list[CategoryCount]:
        count = func.count(Post.id)
        rows = (
            self._published()
            .filter(Post.category.is_not(None))
            .with_entities(Post.category, count)
            .group_by(Post.category)
            .order_by(count.desc(), Post.category.asc())
            .all()
        )
        return [CategoryCount(category=name, count=int(total)) for name, total in rows]

    def tag_counts(self, limit: int = TAG_COUNT_LIMIT) -> list[TagCount]:
        count = func.count(PostTag.post_id)
        rows = (
            self.db.query(PostTag.name, count)
            .join(Post, Post.id == PostTag.post_id)
            .filter(Post.status == POST_STATUS_PUBLISHED)
            .group_by(PostTag.name)
            .order_by(count.desc(), PostTag.name.asc())
            .limit(limit)
            .all()
        )
        return [TagCount(tag=name, count=int(total)) for name, total in rows]

    def user_stats(self, author_id: int) -> PostStats:
        rows = (
            self.db.query(
                Post.status,
                func.count(Post.id),
                func.coalesce(func.sum(Post.view_count), 0),
                func.coalesce(func.sum(Post.like_count), 0),
                func.coalesce(func.sum(Post.comment_count), 0),
            )
            .filter(Post.author_id == author_id)
            .group_by(Post.status)
            .all()
        )
        by_status = {status: int(count) for status, count, _, _, _ in rows}
        return PostStats(
            total_posts=sum(by_status.values()),
            published=by_status.get(POST_STATUS_PUBLISHED, 0),
            drafts=by_status.get(POST_STATUS_DRAFT, 0),
            archived=by_status.get(POST_STATUS_ARCHIVED, 0),
            total_views=sum(int(views) for _, _, views, _, _ in rows),
            total_likes=sum(int(likes) for _, _, _, likes, _ in rows),
            total_comments=sum(int(comments) for _, _, _, _, comments in rows),
        )
