"""
Portal Backend - User Service
===============================

What:  User management for admins and self-service profile/theme/avatar updates.
How:   Plain async methods over an AsyncSession. Permission rules that depend
       on who is calling (self vs admin) live here so every route applies
       them the same way. SQLAlchemy errors are translated into PortalError
       subclasses; the session dependency rolls back.
Who:   /api/users and /api/user routes.

Permission Rules:
    get / update       self or ADMIN
    change role        ADMIN only, and an admin cannot demote themselves
    delete             ADMIN only, and never your own account
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from portal.models.user import Theme, User, UserPreference
from portal.roles import Role
from portal.schemas.user import UserUpdate
from portal.security import SessionUser, hash_password

logger = logging.getLogger(__name__)


def _parse_id(user_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        raise NotFoundError(resource="User", resource_id=str(user_id))


class UserService:

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_by_id(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, _parse_id(user_id))
        if user is None:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        return user

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def list_users(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> Tuple[List[User], int]:
        """
        Returns one page of users (newest first) and the total match count.

        `search` matches name or email, case-insensitively.
        """
        conditions = []
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern))
            )
        if role is not None:
            conditions.append(User.role == role)

        try:
            total = await db.scalar(select(func.count()).select_from(User).where(*conditions))
            result = await db.execute(
                select(User)
                .where(*conditions)
                .order_by(User.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "list_users"})
        return list(result.scalars().all()), total or 0

    # ── Admin / self management ───────────────────────────────────────────

    async def get_user(self, db: AsyncSession, actor: SessionUser, user_id: str) -> User:
        if actor.user_id != str(user_id) and not actor.is_admin:
            raise ForbiddenError()
        return await self.get_by_id(db, user_id)

    async def update_user(
        self,
        db: AsyncSession,
        actor: SessionUser,
        user_id: str,
        data: UserUpdate,
    ) -> User:
        if actor.user_id != str(user_id) and not actor.is_admin:
            raise ForbiddenError()
        if data.role is not None and not actor.is_admin:
            raise ForbiddenError("Admin access required to change roles")

        user = await self.get_by_id(db, user_id)
        fields = data.model_fields_set

        if "name" in fields:
            user.name = data.name
        if "email" in fields and data.email is not None:
            email = str(data.email).lower()
            if email != user.email:
                existing = await self.get_by_email(db, email)
                if existing is not None and existing.id != user.id:
                    raise ConflictError("Email already in use")
                user.email = email
                # A new address has not been verified yet
                user.email_verified_at = None
        if data.password:
            user.password_hash = hash_password(data.password)
        if data.role is not None:
            if actor.user_id == str(user.id) and data.role != Role.ADMIN:
                raise ValidationError("Cannot remove your own admin role", field="role")
            user.role = data.role

        await self._flush(db, "update_user")
        logger.info("User %s updated by %s (fields=%s)", user.id, actor.user_id, sorted(fields))
        return user

    async def change_role(
        self, db: AsyncSession, actor: SessionUser, user_id: str, role: Role
    ) -> User:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if actor.user_id == str(user_id) and role != Role.ADMIN:
            raise ValidationError("Cannot remove your own admin role", field="role")

        user = await self.get_by_id(db, user_id)
        previous = user.role
        user.role = role
        await self._flush(db, "change_role")
        logger.info(
            "Role of user %s changed from %s to %s by %s",
            user.id, previous.value, role.value, actor.user_id,
        )
        return user

    async def delete_user(self, db: AsyncSession, actor: SessionUser, user_id: str) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if actor.user_id == str(user_id):
            raise ValidationError("Cannot delete your own account")

        user = await self.get_by_id(db, user_id)
        await db.delete(user)
        await self._flush(db, "delete_user")
        logger.info("User %s deleted by %s", user_id, actor.user_id)

    # ── Self-service ──────────────────────────────────────────────────────

    async def update_profile(self, db: AsyncSession, user_id: str, name: str) -> User:
        user = await self.get_by_id(db, user_id)
        user.name = name.strip()
        await self._flush(db, "update_profile")
        return user

    async def get_theme(self, db: AsyncSession, user_id: str) -> Theme:
        """The user's theme, creating the SYSTEM default row on first access."""
        preference = await self._get_or_create_preference(db, user_id)
        return preference.theme

    async def set_theme(self, db: AsyncSession, user_id: str, theme: Theme) -> Theme:
        preference = await self._get_or_create_preference(db, user_id)
        preference.theme = theme
        await self._flush(db, "set_theme")
        return preference.theme

    async def set_avatar(self, db: AsyncSession, user_id: str, avatar_path: str) -> User:
        # Stored file names are prefixed with the owner's id
        if not avatar_path.startswith(str(user_id)):
            raise ValidationError("You can only set your own avatar", field="avatar_path")
        user = await self.get_by_id(db, user_id)
        user.avatar = avatar_path
        await self._flush(db, "set_avatar")
        return user

    async def _get_or_create_preference(self, db: AsyncSession, user_id: str) -> UserPreference:
        uid = _parse_id(user_id)
        result = await db.execute(select(UserPreference).where(UserPreference.user_id == uid))
        preference = result.scalar_one_or_none()
        if preference is None:
            await self.get_by_id(db, user_id)
            preference = UserPreference(user_id=uid, theme=Theme.SYSTEM)
            db.add(preference)
            await self._flush(db, "create_preference")
        return preference

    async def _flush(self, db: AsyncSession, operation: str) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning("Integrity error in %s: %s", operation, e.orig)
            raise ConflictError(context={"operation": operation})
        except SQLAlchemyError as e:
            logger.error("Database error in %s: %s", operation, e, exc_info=True)
            raise DatabaseError(context={"operation": operation})


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
