"""SQLAlchemy models for the Inkwell application."""

from .category import Category
from .comment import Comment, CommentReport
from .like import Like
from .post import Post, PostTag
from .post_view import PostView
from .user import RefreshToken, User

__all__ = [
    "Category",
    "Comment", "CommentReport",
    "Like",
    "Post", "PostTag", "PostView",
    "RefreshToken", "User",
]
