"""
Portal Backend - Article Route Handlers
=========================================

    GET    /api/articles             published articles (filters, paging)
    POST   /api/articles             create an article (signed in)
    GET    /api/articles/featured    featured published articles
    GET    /api/articles/{slug}      read one article; counts a view
    PUT    /api/articles/{slug}      update (author or admin)
    DELETE /api/articles/{slug}      delete (author or admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import get_db_session
from portal.dependencies import RequestLogger, require_session
from portal.logger import Logger
from portal.operation_result import success_response
from portal.schemas.article import ArticleCreate, ArticleListResponse, ArticleResponse, ArticleUpdate
from portal.schemas.common import Pagination
from portal.security import SessionUser
from portal.services.article_service import ArticleFilters, article_service

router = APIRouter(prefix="/api/articles", tags=["Articles"])


@router.get("", summary="List published articles")
async def list_articles(
    category: Optional[str] = Query(default=None, description="Category slug"),
    featured: Optional[bool] = Query(default=None),
    hot: Optional[bool] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    filters = ArticleFilters(
        category_slug=category,
        is_featured=featured,
        is_hot=hot,
        search=search,
    )
    articles, total = await article_service.list_articles(db, filters, page=page, limit=limit)
    return success_response(
        ArticleListResponse(
            articles=[ArticleResponse.model_validate(a) for a in articles],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("", status_code=201, summary="Create an article")
async def create_article(
    body: ArticleCreate,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/articles")),
) -> JSONResponse:
    article = await article_service.create(db, session, body)
    log.info("Article created", article_id=str(article.id), slug=article.slug)
    return success_response(
        {"article": ArticleResponse.model_validate(article)},
        "Article created",
        status_code=201,
    )


# Declared before /{slug} so "featured" is not taken for a slug
@router.get("/featured", summary="Featured articles")
async def featured_articles(
    limit: int = Query(default=3, ge=1, le=10),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    articles = await article_service.featured(db, limit=limit)
    return success_response({"articles": [ArticleResponse.model_validate(a) for a in articles]})


@router.get("/{slug}", summary="Get an article by slug")
async def get_article(
    slug: str,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    article = await article_service.get_by_slug(db, slug)
    await article_service.increment_view_count(db, article)
    return success_response({"article": ArticleResponse.model_validate(article)})


@router.put("/{slug}", summary="Update an article")
async def update_article(
    slug: str,
    body: ArticleUpdate,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/articles")),
) -> JSONResponse:
    article = await article_service.update(db, session, slug, body)
    log.info("Article updated", article_id=str(article.id))
    return success_response({"article": ArticleResponse.model_validate(article)}, "Article updated")


@router.delete("/{slug}", summary="Delete an article")
async def delete_article(
    slug: str,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/articles")),
) -> JSONResponse:
    await article_service.delete(db, session, slug)
    log.info("Article deleted", slug=slug)
    return success_response({"deleted": True}, "Article deleted")
