# src/inkwell/api/v1/endpoints/users.py
"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from inkwell.api.v1.dependencies import (
    AdminUserDep,
    CacheDep,
    CurrentUserDep,
    PaginationDep,
    SessionDep,
)
from inkwell.core.settings import settings
from inkwell.schemas.comment import CommentListResponse
from inkwell.schemas.common import MessageResponse, PaginationMeta
from inkwell.schemas.like import LikeListResponse, LikeResponse, LikeTarget
from inkwell.schemas.post import PostFilters, PostListResponse, PostResponse
from inkwell.schemas.user import (
    ChangePasswordRequest,
    PublicUserResponse,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from inkwell.services import user_service
from inkwell.services.auth_service import AuthService, sanitize_user
from inkwell.services.cache import user_key
from inkwell.services.comment_service import CommentService, present
from inkwell.services.like_service import LikeService
from inkwell.services.post_service import PostService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(_: AdminUserDep, db: SessionDep, pagination: PaginationDep) -> UserListResponse:
    """List every account; administrators only."""
    users, total = user_service.list_users(db, pagination.page, pagination.limit)
    return UserListResponse(
        users=[sanitize_user(user) for user in users],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUserDep) -> UserResponse:
    return sanitize_user(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    payload: UserUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> UserResponse:
    """Update the caller's profile fields."""
    user = user_service.update_profile(db, current_user, payload)
    cache.invalidate_user_cache(user.id)
    return sanitize_user(user)


@router.post("/me/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MessageResponse:
    """Change the caller's password and sign out every other session."""
    AuthService(db).change_password(current_user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")


@router.get("/me/likes", response_model=LikeListResponse)
async def my_likes(
    current_user: CurrentUserDep,
    db: SessionDep,
    pagination: PaginationDep,
    target_type: LikeTarget | None = Query(None, description="Only likes on posts or comments"),
) -> LikeListResponse:
    likes, total = LikeService(db).likes_by_user(
        current_user.id, target_type, pagination.page, pagination.limit
    )
    return LikeListResponse(
        likes=[LikeResponse.model_validate(like) for like in likes],
        meta=PaginationMeta.build(pagination.page, pagination.limit, total),
    )


@router.get("/by-username/{username}", response_model=PublicUserResponse)
async def get_by_username(username: str, db: SessionDep) -> PublicUserResponse:
    return PublicUserResponse.model_validate(user_service.get_user_by_username(db, username))


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_user(user_id: int, db: SessionDep, cache: CacheDep) -> PublicUserResponse:
    """Return a public profile; profiles are cached until the owner edits them."""
    cached = cache.get(user_key(user_id))
    if cached is not None:
        return PublicUserResponse.model_validate(cached)
    profile = PublicUserResponse.model_validate(user_service.get_user_or_404(db, user_id))
    cache.set(user_key(user_id), profile.model_dump(mode="json"))
    return profile


@router.get("/{user_id}/posts", response_model=PostListResponse)
async def user_posts(
    user_id: int,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.posts_page_size, ge=1, le=settings.max_page_size),
) -> PostListResponse:
    """Published posts by one author, newest first."""
    user_service.get_user_or_404(db, user_id)
    filters = PostFilters(page=page, limit=limit, author_id=user_id)
    posts, total = PostService(db).list_published(filters)
    return PostListResponse(
        posts=[PostResponse.model_validate(post) for post in posts],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.get("/{user_id}/comments", response_model=CommentListResponse)
async def user_comments(user_id: int, db: SessionDep, pagination: PaginationDep) -> CommentListResponse:
    user_service.get_user_or_404(db, user_id)
    comments, total = CommentService(db).find_by_user(user_id, pagination.page, pagination.limit)
    return CommentListResponse(
        comments=[present(comment) for comment in comments],
        meta=PaginationMeta.build(pagination.page, pagination.limit, total),
    )
