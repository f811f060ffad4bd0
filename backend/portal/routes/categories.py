"""Category routes: public listing, admin-only writes."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import get_db_session
from portal.dependencies import require_admin
from portal.operation_result import success_response
from portal.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from portal.security import SessionUser
from portal.services.category_service import category_service

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("", summary="List categories")
async def list_categories(
    include_count: bool = Query(default=False, alias="includeCount"),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    categories = await category_service.list_categories(db)
    counts = await category_service.article_counts(db) if include_count else {}

    items = []
    for category in categories:
        item = CategoryResponse.model_validate(category)
        if include_count:
            item.article_count = counts.get(category.id, 0)
        items.append(item)
    return success_response({"categories": items})


@router.post("", status_code=201, summary="Create a category (admin)")
async def create_category(
    body: CategoryCreate,
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    category = await category_service.create(db, body)
    return success_response(
        {"category": CategoryResponse.model_validate(category)},
        "Category created",
        status_code=201,
    )


@router.put("/{slug}", summary="Update a category (admin)")
async def update_category(
    slug: str,
    body: CategoryUpdate,
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    category = await category_service.update(db, slug, body)
    return success_response({"category": CategoryResponse.model_validate(category)}, "Category updated")


@router.delete("/{slug}", summary="Delete a category (admin)")
async def delete_category(
    slug: str,
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    await category_service.delete(db, slug)
    return success_response({"deleted": True}, "Category deleted")
