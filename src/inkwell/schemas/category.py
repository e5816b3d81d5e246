"""Category-related Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _check_color(v: str | None) -> str | None:
    if v is not None and not HEX_COLOR_PATTERN.match(v):
        raise ValueError("Color must be a valid hex color code (e.g., #3B82F6)")
    return v


def _check_slug(v: str | None) -> str | None:
    if v is not None and not SLUG_PATTERN.match(v):
        raise ValueError("Slug may only contain lowercase letters, numbers and single hyphens")
    return v


class CategoryCreate(BaseModel):
    """Schema for creating a category; the slug is derived from the name if omitted."""

    name: str = Field(..., min_length=1, max_length=50)
    description: str | None = Field(None, max_length=200)
    slug: str | None = Field(None, max_length=100)
    icon: str | None = Field(None, max_length=50)
    color: str | None = None
    is_active: bool = True

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return _check_color(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        return _check_slug(v)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=50)
    description: str | None = Field(None, max_length=200)
    slug: str | None = Field(None, max_length=100)
    icon: str | None = Field(None, max_length=50)
    color: str | None = None
    is_active: bool | None = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return _check_color(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        return _check_slug(v)


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None
    post_count: int
    is_active: bool
    icon: str | None
    color: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryWithCount(CategoryResponse):
    """Category plus the live number of published posts filed under it."""

    published_posts: int
