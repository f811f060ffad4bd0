"""
Portal Backend - Article Service
==================================

What:  Article listing, lookup, authoring and view counting.
How:   Async SQLAlchemy queries; author and category are eager-loaded by the
       model so results serialize without further queries.
Who:   /api/articles routes.

Listing Rules:
    - Without an explicit status only PUBLISHED articles are returned
    - Order: featured first, then newest published_at
    - `search` matches title or description, case-insensitively
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from portal.exceptions import ConflictError, DatabaseError, ForbiddenError, NotFoundError
from portal.models.article import Article, ArticleStatus
from portal.models.category import Category
from portal.models.user import User
from portal.schemas.article import ArticleCreate, ArticleUpdate
from portal.security import SessionUser

logger = logging.getLogger(__name__)


@dataclass
class ArticleFilters:
    category_slug: Optional[str] = None
    is_featured: Optional[bool] = None
    is_hot: Optional[bool] = None
    status: Optional[ArticleStatus] = None
    author_id: Optional[uuid.UUID] = None
    search: Optional[str] = None


class ArticleService:

    async def list_articles(
        self,
        db: AsyncSession,
        filters: ArticleFilters,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Article], int]:
        conditions = [Article.status == (filters.status or ArticleStatus.PUBLISHED)]
        if filters.category_slug:
            conditions.append(Article.category.has(Category.slug == filters.category_slug))
        if filters.is_featured is not None:
            conditions.append(Article.is_featured == filters.is_featured)
        if filters.is_hot is not None:
            conditions.append(Article.is_hot == filters.is_hot)
        if filters.author_id is not None:
            conditions.append(Article.author_id == filters.author_id)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            conditions.append(
                or_(
                    func.lower(Article.title).like(pattern),
                    func.lower(Article.description).like(pattern),
                )
            )

        try:
            total = await db.scalar(select(func.count()).select_from(Article).where(*conditions))
            result = await db.execute(
                select(Article)
                .where(*conditions)
                .order_by(Article.is_featured.desc(), Article.published_at.desc().nulls_last())
                .offset((page - 1) * limit)
                .limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing articles: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "list_articles"})

        articles = list(result.scalars().all())
        logger.debug("Fetched %d articles (page=%d, limit=%d)", len(articles), page, limit)
        return articles, total or 0

    async def featured(self, db: AsyncSession, limit: int = 3) -> List[Article]:
        result = await db.execute(
            select(Article)
            .where(Article.is_featured.is_(True), Article.status == ArticleStatus.PUBLISHED)
            .order_by(Article.published_at.desc().nulls_last())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Article:
        result = await db.execute(select(Article).where(Article.slug == slug))
        article = result.scalar_one_or_none()
        if article is None:
            raise NotFoundError(resource="Article", resource_id=slug)
        return article

    async def increment_view_count(self, db: AsyncSession, article: Article) -> None:
        await db.execute(
            update(Article)
            .where(Article.id == article.id)
            .values(view_count=Article.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        # Keep the loaded instance in step without marking it dirty
        set_committed_value(article, "view_count", article.view_count + 1)

    async def create(self, db: AsyncSession, author: SessionUser, data: ArticleCreate) -> Article:
        if await self._slug_taken(db, data.slug):
            raise ConflictError("Article with this slug already exists")
        if await db.get(Category, data.category_id) is None:
            raise NotFoundError(resource="Category", resource_id=str(data.category_id))
        author_id = uuid.UUID(author.user_id)
        if await db.get(User, author_id) is None:
            raise NotFoundError(resource="Author", resource_id=author.user_id)

        article = Article(**data.model_dump(), author_id=author_id)
        db.add(article)
        await self._flush(db, "create_article")
        await db.refresh(article, ["author", "category"])
        logger.info("Article created: %s (slug=%s)", article.id, article.slug)
        return article

    async def update(
        self, db: AsyncSession, actor: SessionUser, slug: str, data: ArticleUpdate
    ) -> Article:
        article = await self.get_by_slug(db, slug)
        self._require_author_or_admin(actor, article)

        changes = data.model_dump(exclude_unset=True)
        new_slug = changes.get("slug")
        if new_slug and new_slug != article.slug and await self._slug_taken(db, new_slug):
            raise ConflictError("Article with this slug already exists")
        category_id = changes.get("category_id")
        if category_id is not None and await db.get(Category, category_id) is None:
            raise NotFoundError(resource="Category", resource_id=str(category_id))

        for field, value in changes.items():
            setattr(article, field, value)
        await self._flush(db, "update_article")
        await db.refresh(article, ["author", "category"])
        logger.info("Article updated: %s (fields=%s)", article.id, sorted(changes))
        return article

    async def delete(self, db: AsyncSession, actor: SessionUser, slug: str) -> None:
        article = await self.get_by_slug(db, slug)
        self._require_author_or_admin(actor, article)
        await db.delete(article)
        await self._flush(db, "delete_article")
        logger.info("Article deleted: %s by %s", article.id, actor.user_id)

    @staticmethod
    def _require_author_or_admin(actor: SessionUser, article: Article) -> None:
        if str(article.author_id) != actor.user_id and not actor.is_admin:
            raise ForbiddenError("You do not have permission to modify this article")

    async def _slug_taken(self, db: AsyncSession, slug: str) -> bool:
        return await db.scalar(select(Article.id).where(Article.slug == slug)) is not None

    async def _flush(self, db: AsyncSession, operation: str) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning("Integrity error in %s: %s", operation, e.orig)
            raise ConflictError(context={"operation": operation})
        except SQLAlchemyError as e:
            logger.error("Database error in %s: %s", operation, e, exc_info=True)
            raise DatabaseError(context={"operation": operation})


article_service = ArticleService()
