# src/inkwell/api/v1/endpoints/categories.py
"""Category endpoints; writes are restricted to administrators."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from inkwell.api.v1.dependencies import AdminUserDep, SessionDep
from inkwell.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithCount,
)
from inkwell.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(db: SessionDep, active_only: bool = True) -> list[CategoryResponse]:
    categories = CategoryService(db).find_all(active_only=active_only)
    return [CategoryResponse.model_validate(category) for category in categories]


@router.get("/with-counts", response_model=list[CategoryWithCount])
async def categories_with_counts(db: SessionDep) -> list[CategoryWithCount]:
    """Active categories with their live published-post counts."""
    return CategoryService(db).with_counts()


@router.get("/slug/{slug}", response_model=CategoryResponse)
async def get_category_by_slug(slug: str, db: SessionDep) -> CategoryResponse:
    return CategoryResponse.model_validate(CategoryService(db).find_by_slug(slug))


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, db: SessionDep) -> CategoryResponse:
    return CategoryResponse.model_validate(CategoryService(db).find_one(category_id))


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, _: AdminUserDep, db: SessionDep) -> CategoryResponse:
    return CategoryResponse.model_validate(CategoryService(db).create(payload))


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    _: AdminUserDep,
    db: SessionDep,
) -> CategoryResponse:
    return CategoryResponse.model_validate(CategoryService(db).update(category_id, payload))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: int, _: AdminUserDep, db: SessionDep) -> Response:
    CategoryService(db).remove(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
