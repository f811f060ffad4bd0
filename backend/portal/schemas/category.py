"""Category request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from portal.schemas.article import SLUG_PATTERN


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    # Only filled when the caller asks for includeCount
    article_count: Optional[int] = None

    model_config = {"from_attributes": True}


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=120, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=50)


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=120, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=50)
