# src/inkwell/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .analytics import router as analytics_router
from .auth import router as auth_router
from .categories import router as categories_router
from .comments import router as comments_router
from .likes import router as likes_router
from .posts import router as posts_router
from .search import router as search_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "analytics_router",
    "auth_router",
    "categories_router",
    "comments_router",
    "likes_router",
    "posts_router",
    "search_router",
    "users_router",
]
