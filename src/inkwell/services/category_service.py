"""Category management."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from inkwell.core.errors import ConflictError, NotFoundError
from inkwell.models import Category, Post
from inkwell.models.post import POST_STATUS_PUBLISHED
from inkwell.schemas.category import CategoryCreate, CategoryUpdate, CategoryWithCount
from inkwell.utils.text import slugify


class CategoryService:
    """Service for category CRUD and post counters."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _ensure_unique(self, name: str | None, slug: str | None, exclude_id: int | None = None) -> None:
        if name is not None:
            query = self.db.query(Category.id).filter(func.lower(Category.name) == name.lower())
            if exclude_id is not None:
                query = query.filter(Category.id != exclude_id)
            if query.first() is not None:
                raise ConflictError("Category with this name already exists")
        if slug is not None:
            query = self.db.query(Category.id).filter(Category.slug == slug)
            if exclude_id is not None:
                query = query.filter(Category.id != exclude_id)
            if query.first() is not None:
                raise ConflictError("Category with this slug already exists")

    def create(self, data: CategoryCreate) -> Category:
        name = data.name.strip()
        slug = data.slug or slugify(name)
        self._ensure_unique(name, slug)
        category = Category(
            name=name,
            slug=slug,
            description=data.description,
            icon=data.icon,
            color=data.color,
            is_active=data.is_active,
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def find_all(self, active_only: bool = False) -> Sequence[Category]:
        query = self.db.query(Category)
        if active_only:
            query = query.filter(Category.is_active.is_(True))
        return query.order_by(Category.post_count.desc(), Category.name.asc()).all()

    def find_one(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def find_by_slug(self, slug: str) -> Category:
        category = self.db.query(Category).filter(Category.slug == slug).first()
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def update(self, category_id: int, data: CategoryUpdate) -> Category:
        category = self.find_one(category_id)
        changes = data.model_dump(exclude_unset=True)

        name = changes.get("name")
        if name is not None:
            name = name.strip()
            changes["name"] = name
            if name == category.name:
                name = None
        slug = changes.get("slug")
        if slug is None and name is not None:
            slug = slugify(name)
            changes["slug"] = slug
        if slug == category.slug:
            slug = None
        self._ensure_unique(name, slug, exclude_id=category.id)

        for key, value in changes.items():
            if value is not None or key in {"description", "icon", "color"}:
                setattr(category, key, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def remove(self, category_id: int) -> None:
        category = self.find_one(category_id)
        self.db.delete(category)
        self.db.commit()

    def update_post_count(self, name: str | None, delta: int) -> None:
        """Adjust the counter of the category called ``name``; the caller commits.

        Unknown names are ignored since posts may use free-form categories.
        """
        if not name or not delta:
            return
        category = self.db.query(Category).filter(func.lower(Category.name) == name.lower()).first()
        if category is not None:
            category.post_count = max(0, category.post_count + delta)

    def with_counts(self) -> list[CategoryWithCount]:
        """Active categories with the live number of published posts in each."""
        counts = dict(
            self.db.query(func.lower(Post.category), func.count(Post.id))
            .filter(Post.status == POST_STATUS_PUBLISHED, Post.category.is_not(None))
            .group_by(func.lower(Post.category))
            .all()
        )
        return [
            CategoryWithCount.model_validate(
                {
                    **{
                        column: getattr(category, column)
                        for column in CategoryWithCount.model_fields
                        if column != "published_posts"
                    },
                    "published_posts": int(counts.get(category.name.lower(), 0)),
                }
            )
            for category in self.find_all(active_only=True)
        ]
