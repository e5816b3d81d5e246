# src/inkwell/api/v1/endpoints/comments.py
"""Threaded comment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from inkwell.api.v1.dependencies import CacheDep, CurrentUserDep, SessionDep
from inkwell.core.settings import settings
from inkwell.schemas.comment import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentSort,
    CommentUpdate,
)
from inkwell.schemas.common import LikeStatus, MessageResponse
from inkwell.services.comment_service import CommentService

router = APIRouter(tags=["comments"])


@router.get("/posts/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: int,
    db: SessionDep,
    cache: CacheDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.comments_page_size, ge=1, le=100),
    sort: CommentSort = "newest",
    include_deleted: bool = False,
) -> CommentListResponse:
    """Root comments of a post, each with its reply tree."""
    return CommentService(db, cache).find_by_post(
        post_id,
        page=page,
        limit=limit,
        sort=sort,
        include_deleted=include_deleted,
    )


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: int,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> CommentResponse:
    """Comment on a post, or reply when ``parent_id`` is given."""
    comment = CommentService(db, cache).create(post_id, current_user.id, payload)
    return CommentResponse.model_validate(comment)


@router.get("/comments/{comment_id}", response_model=CommentResponse)
async def get_comment(comment_id: int, db: SessionDep, cache: CacheDep) -> CommentResponse:
    return CommentService(db, cache).find_one(comment_id)


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> CommentResponse:
    comment = CommentService(db, cache).update(comment_id, current_user.id, payload)
    return CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_id}", response_model=CommentResponse)
async def delete_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> CommentResponse:
    """Soft-delete a comment; its replies stay in the thread."""
    comment = CommentService(db, cache).remove(comment_id, current_user.id)
    return CommentResponse.model_validate(comment)


@router.post("/comments/{comment_id}/like", response_model=LikeStatus)
async def toggle_comment_like(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> LikeStatus:
    """Like the comment, or remove the caller's like if present."""
    return CommentService(db, cache).toggle_like(comment_id, current_user.id)


@router.post("/comments/{comment_id}/report", response_model=MessageResponse)
async def report_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> MessageResponse:
    CommentService(db, cache).report(comment_id, current_user.id)
    return MessageResponse(message="Comment reported successfully")
