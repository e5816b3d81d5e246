# src/inkwell/services/__init__.py
"""Business logic services for the Inkwell application."""

from .auth_service import AuthService
from .cache import CacheService, get_cache_service
from .category_service import CategoryService
from .comment_service import CommentService
from .like_service import LikeService
from .post_service import PostService

__all__ = [
    "AuthService",
    "CacheService",
    "CategoryService",
    "CommentService",
    "LikeService",
    "PostService",
    "get_cache_service",
]
