# src/inkwell/api/v1/endpoints/search.py
"""Full-text style search over published posts."""

from __future__ import annotations

from fastapi import APIRouter, Query

from inkwell.api.v1.dependencies import OptionalUserDep, SessionDep
from inkwell.api.v1.endpoints.posts import mark_liked, split_tags
from inkwell.core.settings import settings
from inkwell.schemas.common import PaginationMeta
from inkwell.schemas.post import (
    PostResponse,
    SearchFilters,
    SearchMeta,
    SearchResponse,
    SearchSort,
    SearchSuggestion,
)
from inkwell.services.post_service import PostService

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search_posts(
    db: SessionDep,
    viewer: OptionalUserDep,
    q: str = Query(..., min_length=1, max_length=200, description="Search terms"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.posts_page_size, ge=1, le=settings.max_page_size),
    category: str | None = None,
    tags: list[str] | None = Query(None),
    author_id: int | None = None,
    sort_by: SearchSort = "relevance",
) -> SearchResponse:
    """Rank published posts by how well they match ``q``."""
    filters = SearchFilters(
        q=q,
        page=page,
        limit=limit,
        category=category or None,
        tags=split_tags(tags),
        author_id=author_id,
        sort_by=sort_by,
    )
    posts, total, suggestions = PostService(db).search(filters)
    responses = [PostResponse.model_validate(post) for post in posts]
    return SearchResponse(
        posts=mark_liked(db, viewer, responses),
        meta=PaginationMeta.build(page, limit, total),
        search_meta=SearchMeta(query=q, results_found=total, suggestions=suggestions),
    )


@router.get("/suggestions", response_model=list[SearchSuggestion])
async def suggestions(db: SessionDep, q: str = Query(..., min_length=1, max_length=200)) -> list[SearchSuggestion]:
    return PostService(db).suggestions(q)
