"""
Portal Backend - Article SQLAlchemy Model
===========================================

What:  ORM model for the `articles` table.
How:   Each article belongs to one author (deleted with the author) and one
       category (category deletion is blocked while articles reference it).
       Author and category are eager-loaded with selectin so async handlers
       never trigger lazy loads during serialization.

Query Patterns:
    - Public listing: WHERE status = 'PUBLISHED' ORDER BY is_featured DESC, published_at DESC
      -> idx_articles_status_published
    - Detail page: WHERE slug = :slug (unique index)
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.database import Base
from portal.models.category import Category
from portal.models.user import User, utcnow


class ArticleStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[ArticleStatus] = mapped_column(
        SAEnum(ArticleStatus, name="article_status"),
        nullable=False,
        default=ArticleStatus.DRAFT,
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Display string, e.g. "5 min read"
    read_time: Mapped[str] = mapped_column(String(32), nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship(lazy="selectin")
    category: Mapped[Category] = relationship(lazy="selectin")

    __table_args__ = (
        Index("idx_articles_status_published", "status", published_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Article(slug='{self.slug}', status='{self.status.value}')>"
