"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import PaginationMeta
from .user import AuthorSummary

CommentSort = Literal["newest", "oldest", "popular"]


class CommentCreate(BaseModel):
    """Schema for creating a comment or a reply."""

    content: str = Field(..., max_length=1000)
    parent_id: int | None = Field(None, description="Comment being replied to")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment content is required")
        return v


class CommentUpdate(BaseModel):
    content: str = Field(..., max_length=1000)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment content is required")
        return v


class CommentResponse(BaseModel):
    """A comment and, when loaded as part of a thread, its replies."""

    id: int
    post_id: int
    parent_id: int | None
    depth: int
    path: str
    content: str
    author: AuthorSummary
    like_count: int
    reports: int
    is_edited: bool
    edited_at: datetime | None
    is_deleted: bool
    is_visible: bool
    created_at: datetime
    updated_at: datetime
    replies: list[CommentResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    meta: PaginationMeta
