"""
Portal Backend - User SQLAlchemy Models
=========================================

What:  ORM models for the `users` and `user_preferences` tables.
How:   UUID primary keys, timezone-aware timestamps, enum columns for role
       and theme. A user has at most one preference row, created on first
       access (see UserService.get_theme).
Who:   UserService, AuthService, ArticleService (author lookups), Alembic.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.database import Base
from portal.roles import Role


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Theme(str, Enum):
    LIGHT = "LIGHT"
    DARK = "DARK"
    SYSTEM = "SYSTEM"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Stored lower-cased; uniqueness is enforced by the database
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # NULL for accounts that have never set a password
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="user_role"),
        nullable=False,
        default=Role.USER,
    )

    # Storage path inside the avatars bucket, always prefixed with the user id
    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    email_verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    preference: Mapped[Optional["UserPreference"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"


class UserPreference(Base):
    __tablename__ = "user_preferences"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    theme: Mapped[Theme] = mapped_column(
        SAEnum(Theme, name="theme"),
        nullable=False,
        default=Theme.SYSTEM,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    user: Mapped["User"] = relationship(back_populates="preference")
