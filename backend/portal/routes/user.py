"""
Portal Backend - Current User Routes
======================================

Self-service endpoints for the signed-in user. Every route requires a session.

    GET/PATCH  /api/user/profile   display name
    GET/PATCH  /api/user/theme     light | dark | system
    GET/PATCH  /api/user/avatar    avatar file path (rate limited)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import get_db_session
from portal.dependencies import RequestLogger, require_session
from portal.logger import Logger
from portal.middleware.rate_limit import RateLimitGuard
from portal.operation_result import success_response
from portal.rate_limit import RateLimitScope
from portal.schemas.user import (
    AvatarResponse,
    AvatarUpdate,
    ProfileResponse,
    ProfileUpdate,
    ThemeResponse,
    ThemeUpdate,
)
from portal.security import SessionUser
from portal.services.user_service import user_service

router = APIRouter(prefix="/api/user", tags=["Current user"])


@router.get("/profile", summary="Get your profile")
async def get_profile(
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    user = await user_service.get_by_id(db, session.user_id)
    return success_response(ProfileResponse.model_validate(user))


@router.patch("/profile", summary="Update your display name")
async def update_profile(
    body: ProfileUpdate,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    user = await user_service.update_profile(db, session.user_id, body.name)
    return success_response(ProfileResponse.model_validate(user), "Profile updated")


@router.get("/theme", summary="Get your theme preference")
async def get_theme(
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    theme = await user_service.get_theme(db, session.user_id)
    return success_response(ThemeResponse(theme=theme))


@router.patch("/theme", summary="Set your theme preference")
async def set_theme(
    body: ThemeUpdate,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    theme = await user_service.set_theme(db, session.user_id, body.theme)
    return success_response(ThemeResponse(theme=theme), "Theme updated")


@router.get(
    "/avatar",
    summary="Get your avatar",
    dependencies=[Depends(RateLimitGuard(RateLimitScope.GENERAL))],
)
async def get_avatar(
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    user = await user_service.get_by_id(db, session.user_id)
    return success_response(AvatarResponse.model_validate(user))


@router.patch(
    "/avatar",
    summary="Set your avatar",
    dependencies=[Depends(RateLimitGuard(RateLimitScope.GENERAL))],
)
async def set_avatar(
    body: AvatarUpdate,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/user/avatar")),
) -> JSONResponse:
    user = await user_service.set_avatar(db, session.user_id, body.avatar_path)
    log.info("Avatar updated", avatar=body.avatar_path)
    return success_response(
        AvatarResponse.model_validate(user),
        "Avatar updated",
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
