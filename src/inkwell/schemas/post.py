"""Post-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator, model_validator

from .common import PaginationMeta
from .user import AuthorSummary

PostStatus = Literal["draft", "published", "archived"]
PostSortField = Literal["published_at", "created_at", "updated_at", "title", "views", "likes"]
SearchSort = Literal["relevance", "date", "popularity"]


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned = [tag.strip().lower() for tag in tags if tag and tag.strip()]
    return list(dict.fromkeys(cleaned))


class PostSeo(BaseModel):
    """Stored SEO fields, echoed back unchanged."""

    meta_title: str | None = Field(None, max_length=60)
    meta_description: str | None = Field(None, max_length=160)
    canonical_url: HttpUrl | None = None
    og_image: HttpUrl | None = None


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=10, description="HTML content")
    excerpt: str | None = Field(None, max_length=300)
    cover_image: HttpUrl | None = None
    category: str | None = Field(None, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=20)
    status: PostStatus = "draft"
    featured: bool = False
    seo: PostSeo | None = None

    @field_validator("tags")
    @classmethod
    def normalise_tags(cls, v: list[str]) -> list[str]:
        """Lower-case, trim and de-duplicate tags."""
        return _clean_tags(v) or []


class PostUpdate(BaseModel):
    """Partial post update; omitted fields are left untouched."""

    title: str | None = Field(None, min_length=3, max_length=200)
    content: str | None = Field(None, min_length=10)
    excerpt: str | None = Field(None, max_length=300)
    cover_image: HttpUrl | None = None
    category: str | None = Field(None, max_length=100)
    tags: list[str] | None = Field(None, max_length=20)
    status: PostStatus | None = None
    featured: bool | None = None
    seo: PostSeo | None = None

    @field_validator("tags")
    @classmethod
    def normalise_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v)


class PostMetadata(BaseModel):
    read_time: int
    word_count: int
    views: int
    likes: int
    comments: int


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None
    cover_image: str | None
    author: AuthorSummary
    category: str | None
    tags: list[str]
    status: PostStatus
    featured: bool
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime
    metadata: PostMetadata
    seo: PostSeo
    is_liked: bool = False

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _from_orm_columns(cls, data: object) -> object:
        if isinstance(data, dict):
            return data
        return {
            "id": data.id,  # type: ignore[attr-defined]
            "title": data.title,  # type: ignore[attr-defined]
            "slug": data.slug,  # type: ignore[attr-defined]
            "content": data.content,  # type: ignore[attr-defined]
            "excerpt": data.excerpt,  # type: ignore[attr-defined]
            "cover_image": data.cover_image,  # type: ignore[attr-defined]
            "author": data.author,  # type: ignore[attr-defined]
            "category": data.category,  # type: ignore[attr-defined]
            "tags": data.tags,  # type: ignore[attr-defined]
            "status": data.status,  # type: ignore[attr-defined]
            "featured": data.featured,  # type: ignore[attr-defined]
            "published_at": data.published_at,  # type: ignore[attr-defined]
            "created_at": data.created_at,  # type: ignore[attr-defined]
            "updated_at": data.updated_at,  # type: ignore[attr-defined]
            "metadata": {
                "read_time": data.read_time,  # type: ignore[attr-defined]
                "word_count": data.word_count,  # type: ignore[attr-defined]
                "views": data.view_count,  # type: ignore[attr-defined]
                "likes": data.like_count,  # type: ignore[attr-defined]
                "comments": data.comment_count,  # type: ignore[attr-defined]
            },
            "seo": {
                "meta_title": data.seo_meta_title,  # type: ignore[attr-defined]
                "meta_description": data.seo_meta_description,  # type: ignore[attr-defined]
                "canonical_url": data.seo_canonical_url,  # type: ignore[attr-defined]
                "og_image": data.seo_og_image,  # type: ignore[attr-defined]
            },
        }


class PostFilters(BaseModel):
    """Filters for listing published posts; also the basis of list cache keys."""

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    author_id: int | None = None
    featured: bool | None = None
    sort_by: PostSortField = "published_at"
    sort_order: Literal["asc", "desc"] = "desc"

    def is_default_listing(self) -> bool:
        """True when only pagination differs from the default filters."""
        return self.model_dump(exclude={"page", "limit"}) == PostFilters().model_dump(
            exclude={"page", "limit"}
        )


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    meta: PaginationMeta


class CategoryCount(BaseModel):
    category: str
    count: int


class TagCount(BaseModel):
    tag: str
    count: int


class PostStats(BaseModel):
    """Per-author totals."""

    total_posts: int
    published: int
    drafts: int
    archived: int
    total_views: int
    total_likes: int
    total_comments: int


class SearchFilters(BaseModel):
    q: str = Field(..., min_length=1, max_length=200)
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    category: str | None = None
    tags: list[str] | None = None
    author_id: int | None = None
    sort_by: SearchSort = "relevance"


class SearchSuggestion(BaseModel):
    title: str
    slug: str


class SearchMeta(BaseModel):
    query: str
    results_found: int
    suggestions: list[SearchSuggestion] = Field(default_factory=list)


class SearchResponse(BaseModel):
    posts: list[PostResponse]
    meta: PaginationMeta
    search_meta: SearchMeta
