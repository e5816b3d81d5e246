"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import AuthResponse, LoginRequest, RegisterRequest, TokenPair
from .category import CategoryCreate, CategoryResponse, CategoryUpdate, CategoryWithCount
from .analytics import PostAnalytics, TrackView
from .comment import CommentCreate, CommentListResponse, CommentResponse, CommentUpdate
from .common import LikeStatus, MessageResponse, PaginationMeta
from .like import LikeListResponse, LikeResponse
from .post import PostCreate, PostFilters, PostListResponse, PostResponse, PostUpdate
from .user import AuthorSummary, PublicUserResponse, UserResponse, UserUpdate

__all__ = [
    "PostAnalytics", "TrackView",
    "AuthResponse", "LoginRequest", "RegisterRequest", "TokenPair",
    "CategoryCreate", "CategoryResponse", "CategoryUpdate", "CategoryWithCount",
    "CommentCreate", "CommentListResponse", "CommentResponse", "CommentUpdate",
    "LikeStatus", "MessageResponse", "PaginationMeta",
    "LikeListResponse", "LikeResponse",
    "PostCreate", "PostFilters", "PostListResponse", "PostResponse", "PostUpdate",
    "AuthorSummary", "PublicUserResponse", "UserResponse", "UserUpdate",
]
