# src/inkwell/api/v1/endpoints/admin.py
"""Moderation endpoints for administrators."""

from __future__ import annotations

from fastapi import APIRouter

from inkwell.api.v1.dependencies import AdminUserDep, CacheDep, PaginationDep, SessionDep
from inkwell.schemas.comment import CommentListResponse, CommentResponse
from inkwell.schemas.common import PaginationMeta
from inkwell.schemas.user import RoleUpdate, UserResponse
from inkwell.services import user_service
from inkwell.services.auth_service import sanitize_user
from inkwell.services.comment_service import CommentService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/reports", response_model=CommentListResponse)
async def reported_comments(
    _: AdminUserDep,
    db: SessionDep,
    cache: CacheDep,
    pagination: PaginationDep,
) -> CommentListResponse:
    """Comments with at least one report, most reported first."""
    comments, total = CommentService(db, cache).find_reported(pagination.page, pagination.limit)
    return CommentListResponse(
        comments=[CommentResponse.model_validate(comment) for comment in comments],
        meta=PaginationMeta.build(pagination.page, pagination.limit, total),
    )


@router.patch("/reports/{comment_id}/dismiss", response_model=CommentResponse)
async def dismiss_report(comment_id: int, _: AdminUserDep, db: SessionDep, cache: CacheDep) -> CommentResponse:
    comment = CommentService(db, cache).dismiss_report(comment_id)
    return CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_id}", response_model=CommentResponse)
async def remove_comment(comment_id: int, _: AdminUserDep, db: SessionDep, cache: CacheDep) -> CommentResponse:
    """Soft-delete any comment with the moderator placeholder."""
    comment = CommentService(db, cache).remove_as_admin(comment_id)
    return CommentResponse.model_validate(comment)


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: int,
    payload: RoleUpdate,
    _: AdminUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> UserResponse:
    user = user_service.set_role(db, user_service.get_user_or_404(db, user_id), payload.role)
    cache.invalidate_user_cache(user.id)
    return sanitize_user(user)
