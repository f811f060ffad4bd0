"""
Portal Backend - Category Service
===================================

Category CRUD. Names and slugs are unique; a category cannot be deleted
while any article still references it.
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.exceptions import ConflictError, NotFoundError
from portal.models.article import Article
from portal.models.category import Category
from portal.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


class CategoryService:

    async def list_categories(self, db: AsyncSession) -> List[Category]:
        result = await db.execute(select(Category).order_by(Category.name.asc()))
        return list(result.scalars().all())

    async def article_counts(self, db: AsyncSession) -> Dict[uuid.UUID, int]:
        """Article count per category id, across every status."""
        result = await db.execute(
            select(Article.category_id, func.count(Article.id)).group_by(Article.category_id)
        )
        return {category_id: count for category_id, count in result.all()}

    async def count_articles(self, db: AsyncSession, category: Category) -> int:
        count = await db.scalar(
            select(func.count(Article.id)).where(Article.category_id == category.id)
        )
        return count or 0

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Category:
        category = await self._find(db, Category.slug, slug)
        if category is None:
            raise NotFoundError(resource="Category", resource_id=slug)
        return category

    async def create(self, db: AsyncSession, data: CategoryCreate) -> Category:
        if await self._find(db, Category.slug, data.slug) is not None:
            raise ConflictError("Category with this slug already exists")
        if await self._find(db, Category.name, data.name) is not None:
            raise ConflictError("Category with this name already exists")

        category = Category(**data.model_dump())
        db.add(category)
        await self._flush(db)
        logger.info("Category created: %s (slug=%s)", category.id, category.slug)
        return category

    async def update(self, db: AsyncSession, slug: str, data: CategoryUpdate) -> Category:
        category = await self.get_by_slug(db, slug)
        changes = data.model_dump(exclude_unset=True)

        new_slug = changes.get("slug")
        if new_slug and new_slug != category.slug and await self._find(db, Category.slug, new_slug):
            raise ConflictError("Category with this slug already exists")
        new_name = changes.get("name")
        if new_name and new_name != category.name and await self._find(db, Category.name, new_name):
            raise ConflictError("Category with this name already exists")

        for field, value in changes.items():
            setattr(category, field, value)
        await self._flush(db)
        logger.info("Category updated: %s", category.id)
        return category

    async def delete(self, db: AsyncSession, slug: str) -> None:
        category = await self.get_by_slug(db, slug)
        if await self.count_articles(db, category) > 0:
            raise ConflictError("Cannot delete category with existing articles")
        await db.delete(category)
        await self._flush(db)
        logger.info("Category deleted: %s", category.id)

    async def _find(self, db: AsyncSession, column, value: str) -> Optional[Category]:
        result = await db.execute(select(Category).where(column == value))
        return result.scalar_one_or_none()

    async def _flush(self, db: AsyncSession) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning("Category integrity error: %s", e.orig)
            raise ConflictError()


category_service = CategoryService()
