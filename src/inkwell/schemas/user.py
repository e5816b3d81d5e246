"""User-related Pydantic schemas."""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator, model_validator

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])")

UserRole = Literal["user", "author", "moderator", "admin"]


def validate_password_strength(value: str) -> str:
    """Require lower and upper case letters, a digit and a special character."""
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number and one special character (@$!%*?&)"
        )
    return value


def _profile_source(data: object) -> object:
    """Fold flat ORM profile columns into the nested ``profile`` shape."""
    if isinstance(data, dict):
        return data
    extracted = {
        "id": getattr(data, "id", None),
        "email": getattr(data, "email", None),
        "username": getattr(data, "username", None),
        "role": getattr(data, "role", "user"),
        "email_verified": getattr(data, "email_verified", False),
        "created_at": getattr(data, "created_at", None),
        "profile": {
            "display_name": getattr(data, "display_name", None) or getattr(data, "username", None),
            "avatar": getattr(data, "avatar", None),
            "bio": getattr(data, "bio", None),
            "location": getattr(data, "location", None),
            "website": getattr(data, "website", None),
        },
    }
    return extracted


class UserProfile(BaseModel):
    """Public profile fields."""

    display_name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None


class UserResponse(BaseModel):
    """Sanitised account returned to the account owner.

    Never carries the password hash or any refresh-token material.
    """

    id: int
    email: str
    username: str
    role: UserRole
    email_verified: bool
    profile: UserProfile
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _nest_profile(cls, data: object) -> object:
        return _profile_source(data)


class PublicUserResponse(BaseModel):
    """Profile visible to other users; omits the email address."""

    id: int
    username: str
    role: UserRole
    profile: UserProfile
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _nest_profile(cls, data: object) -> object:
        return _profile_source(data)


class AuthorSummary(BaseModel):
    """Compact author reference embedded in posts, comments and likes."""

    id: int
    username: str
    display_name: str
    avatar: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _default_display_name(cls, data: object) -> object:
        if isinstance(data, dict):
            return data
        return {
            "id": data.id,  # type: ignore[attr-defined]
            "username": data.username,  # type: ignore[attr-defined]
            "display_name": data.display_name or data.username,  # type: ignore[attr-defined]
            "avatar": data.avatar,  # type: ignore[attr-defined]
        }


class UserUpdate(BaseModel):
    """Partial profile update."""

    display_name: str | None = Field(None, min_length=1, max_length=50)
    avatar: HttpUrl | None = None
    bio: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=100)
    website: HttpUrl | None = None


class ChangePasswordRequest(BaseModel):
    """Payload for changing the caller's password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=32)

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UserListResponse(BaseModel):
    """Paginated account listing for administrators."""

    users: list[UserResponse]
    total: int
    page: int
    limit: int


class RoleUpdate(BaseModel):
    role: UserRole
