# src/inkwell/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    analytics_router,
    auth_router,
    categories_router,
    comments_router,
    likes_router,
    posts_router,
    search_router,
    users_router,
)

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
