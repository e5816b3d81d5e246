# src/inkwell/api/v1/endpoints/likes.py
"""Like endpoints for posts and comments."""

from __future__ import annotations

from fastapi import APIRouter, Query

from inkwell.api.v1.dependencies import CacheDep, CurrentUserDep, PaginationDep, SessionDep
from inkwell.models.like import TARGET_COMMENT, TARGET_POST
from inkwell.schemas.common import LikeStatus, PaginationMeta
from inkwell.schemas.like import LikeCheck, LikeListResponse, LikeResponse, LikeTarget
from inkwell.services.like_service import LikeService

router = APIRouter(tags=["likes"])


def _likes_page(service: LikeService, target_type: str, target_id: int, page: int, limit: int) -> LikeListResponse:
    likes, total = service.likes_for(target_type, target_id, page, limit)
    return LikeListResponse(
        likes=[LikeResponse.model_validate(like) for like in likes],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.post("/posts/{post_id}/like", response_model=LikeStatus)
async def like_post(post_id: int, current_user: CurrentUserDep, db: SessionDep, cache: CacheDep) -> LikeStatus:
    result = LikeService(db).like_post(current_user.id, post_id)
    cache.invalidate_post_cache(post_id)
    return result


@router.delete("/posts/{post_id}/like", response_model=LikeStatus)
async def unlike_post(post_id: int, current_user: CurrentUserDep, db: SessionDep, cache: CacheDep) -> LikeStatus:
    result = LikeService(db).unlike_post(current_user.id, post_id)
    cache.invalidate_post_cache(post_id)
    return result


@router.get("/posts/{post_id}/likes", response_model=LikeListResponse)
async def post_likes(post_id: int, db: SessionDep, pagination: PaginationDep) -> LikeListResponse:
    """Users who liked a post, newest first."""
    return _likes_page(LikeService(db), TARGET_POST, post_id, pagination.page, pagination.limit)


@router.get("/comments/{comment_id}/likes", response_model=LikeListResponse)
async def comment_likes(comment_id: int, db: SessionDep, pagination: PaginationDep) -> LikeListResponse:
    return _likes_page(LikeService(db), TARGET_COMMENT, comment_id, pagination.page, pagination.limit)


@router.get("/likes/check", response_model=LikeCheck)
async def check_like(
    current_user: CurrentUserDep,
    db: SessionDep,
    target_type: LikeTarget = Query(...),
    target_id: int = Query(..., ge=1),
) -> LikeCheck:
    """Whether the caller has liked a post or comment."""
    return LikeCheck(liked=LikeService(db).is_liked(current_user.id, target_type, target_id))
