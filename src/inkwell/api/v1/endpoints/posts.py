# src/inkwell/api/v1/endpoints/posts.py
"""Post-related endpoints for the Inkwell API."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from fastapi import APIRouter, Query, Response, status
from sqlalchemy.orm import Session

from inkwell.api.v1.dependencies import CurrentUserDep, OptionalUserDep, SessionDep
from inkwell.core.settings import settings
from inkwell.models import Post, User
from inkwell.models.like import TARGET_POST
from inkwell.schemas.common import PaginationMeta
from inkwell.schemas.post import (
    CategoryCount,
    PostCreate,
    PostFilters,
    PostListResponse,
    PostResponse,
    PostSortField,
    PostStats,
    PostStatus,
    PostUpdate,
    TagCount,
)
from inkwell.services.like_service import LikeService
from inkwell.services.post_service import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


def split_tags(tags: Iterable[str] | None) -> list[str] | None:
    """Accept both ``?tags=a&tags=b`` and ``?tags=a,b``."""
    if not tags:
        return None
    names = [name.strip().lower() for tag in tags for name in tag.split(",") if name.strip()]
    return names or None


def mark_liked(
    db: Session, viewer: User | None, responses: Sequence[PostResponse]
) -> list[PostResponse]:
    """Set ``is_liked`` on each response for an authenticated viewer."""
    if viewer is None or not responses:
        return list(responses)
    liked = LikeService(db).liked_ids(viewer.id, TARGET_POST, (post.id for post in responses))
    return [post.model_copy(update={"is_liked": post.id in liked}) for post in responses]


def _page(
    db: Session, viewer: User | None, posts: Sequence[Post], page: int, limit: int, total: int
) -> PostListResponse:
    responses = [PostResponse.model_validate(post) for post in posts]
    return PostListResponse(
        posts=mark_liked(db, viewer, responses),
        meta=PaginationMeta.build(page, limit, total),
    )


def _one(db: Session, viewer: User | None, post: Post) -> PostResponse:
    return mark_liked(db, viewer, [PostResponse.model_validate(post)])[0]


@router.get("", response_model=PostListResponse)
async def list_posts(
    db: SessionDep,
    viewer: OptionalUserDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.posts_page_size, ge=1, le=settings.max_page_size),
    search: str | None = Query(None, max_length=200),
    category: str | None = None,
    tags: list[str] | None = Query(None),
    author_id: int | None = None,
    featured: bool | None = None,
    sort_by: PostSortField = "published_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
) -> PostListResponse:
    """List published posts with filters, sorting and pagination."""
    filters = PostFilters(
        page=page,
        limit=limit,
        search=search or None,
        category=category or None,
        tags=split_tags(tags),
        author_id=author_id,
        featured=featured,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = PostService(db).listing(filters)
    result.posts = mark_liked(db, viewer, result.posts)
    return result


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(payload: PostCreate, current_user: CurrentUserDep, db: SessionDep) -> PostResponse:
    post = PostService(db).create(current_user, payload)
    return PostResponse.model_validate(post)


@router.get("/mine", response_model=PostListResponse)
async def my_posts(
    current_user: CurrentUserDep,
    db: SessionDep,
    post_status: PostStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.posts_page_size, ge=1, le=settings.max_page_size),
) -> PostListResponse:
    """The caller's posts in every status."""
    posts, total = PostService(db).list_for_author(
        current_user.id, status=post_status, page=page, limit=limit
    )
    return _page(db, current_user, posts, page, limit, total)


@router.get("/mine/stats", response_model=PostStats)
async def my_stats(current_user: CurrentUserDep, db: SessionDep) -> PostStats:
    return PostService(db).user_stats(current_user.id)


@router.get("/drafts", response_model=PostListResponse)
async def my_drafts(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.posts_page_size, ge=1, le=settings.max_page_size),
) -> PostListResponse:
    posts, total = PostService(db).drafts(current_user.id, page=page, limit=limit)
    return _page(db, current_user, posts, page, limit, total)


@router.get("/trending", response_model=list[PostResponse])
async def trending(
    db: SessionDep,
    viewer: OptionalUserDep,
    limit: int = Query(10, ge=1, le=50),
) -> list[PostResponse]:
    """Most viewed published posts."""
    posts = PostService(db).trending(limit)
    return mark_liked(db, viewer, [PostResponse.model_validate(post) for post in posts])


@router.get("/categories", response_model=list[CategoryCount])
async def categories(db: SessionDep) -> list[CategoryCount]:
    return PostService(db).category_counts()


@router.get("/tags", response_model=list[TagCount])
async def tags(db: SessionDep) -> list[TagCount]:
    return PostService(db).tag_counts()


@router.get("/id/{post_id}", response_model=PostResponse)
async def get_post_by_id(post_id: int, db: SessionDep, viewer: OptionalUserDep) -> PostResponse:
    """Fetch a post by id; drafts and archived posts are visible to their author only."""
    post = PostService(db).get_visible(post_id, viewer)
    return _one(db, viewer, post)


@router.get("/{post_id}/related", response_model=list[PostResponse])
async def related(
    post_id: int,
    db: SessionDep,
    viewer: OptionalUserDep,
    limit: int = Query(3, ge=1, le=20),
) -> list[PostResponse]:
    posts = PostService(db).related(post_id, limit)
    return mark_liked(db, viewer, [PostResponse.model_validate(post) for post in posts])


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    payload: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    post = PostService(db).update(post_id, current_user, payload)
    return _one(db, current_user, post)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> Response:
    """Delete a post with its comments and likes."""
    PostService(db).remove(post_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/publish", response_model=PostResponse)
async def publish_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> PostResponse:
    return _one(db, current_user, PostService(db).publish(post_id, current_user))


@router.post("/{post_id}/archive", response_model=PostResponse)
async def archive_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> PostResponse:
    return _one(db, current_user, PostService(db).archive(post_id, current_user))


@router.post("/{post_id}/unarchive", response_model=PostResponse)
async def unarchive_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> PostResponse:
    return _one(db, current_user, PostService(db).unarchive(post_id, current_user))


@router.get("/{slug}", response_model=PostResponse)
async def get_post(slug: str, db: SessionDep, viewer: OptionalUserDep) -> PostResponse:
    """Fetch a post by slug, counting a view when it is published."""
    post = PostService(db).get_by_slug(slug, viewer)
    return _one(db, viewer, post)
