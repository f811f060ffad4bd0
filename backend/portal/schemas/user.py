"""
Portal Backend - User Request/Response Schemas
================================================

Responses never include password_hash. Request models forbid unknown fields
so a typo ("rol") fails validation instead of being silently ignored.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from portal.models.user import Theme
from portal.roles import Role
from portal.schemas.common import Pagination


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    role: Role
    avatar: Optional[str] = None
    email_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


class ProfileResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    role: Role
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


class AvatarResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


class ThemeResponse(BaseModel):
    theme: Theme


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class UserUpdate(BaseModel):
    """
    PUT /api/users/{id}. Every field is optional; `role` requires ADMIN.

    An empty password leaves the current one untouched.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, max_length=128)
    role: Optional[Role] = None


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Role


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)


class ThemeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    theme: Theme


class AvatarUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    avatar_path: str = Field(min_length=1, max_length=512)
