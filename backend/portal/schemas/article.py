"""
Portal Backend - Article Request/Response Schemas
===================================================

Articles are returned with a compact author and category summary so list
pages need no extra lookups.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from portal.models.article import ArticleStatus
from portal.schemas.common import Pagination


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ArticleAuthor(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


class ArticleCategory(BaseModel):
    id: uuid.UUID
    name: str
    slug: str

    model_config = {"from_attributes": True}


class ArticleResponse(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    description: str
    content: str
    status: ArticleStatus
    is_featured: bool
    is_hot: bool
    read_time: str
    view_count: int
    published_at: Optional[datetime] = None
    author_id: uuid.UUID
    category_id: uuid.UUID
    author: ArticleAuthor
    category: ArticleCategory
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ArticleListResponse(BaseModel):
    articles: List[ArticleResponse]
    pagination: Pagination


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ArticleCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str = Field(min_length=1)
    content: str = Field(min_length=1)
    category_id: uuid.UUID
    read_time: str = Field(min_length=1, max_length=32, examples=["8 min read"])
    status: ArticleStatus = ArticleStatus.DRAFT
    is_featured: bool = False
    is_hot: bool = False
    published_at: Optional[datetime] = None


class ArticleUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[uuid.UUID] = None
    read_time: Optional[str] = Field(default=None, min_length=1, max_length=32)
    status: Optional[ArticleStatus] = None
    is_featured: Optional[bool] = None
    is_hot: Optional[bool] = None
    published_at: Optional[datetime] = None
