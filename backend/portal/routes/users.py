"""
Portal Backend - User Management Routes
=========================================

    GET    /api/users              list users (admin; search, role, paging)
    GET    /api/users/{id}         read a user (self or admin)
    PUT    /api/users/{id}         update a user (self or admin; role needs admin)
    DELETE /api/users/{id}         delete a user (admin, never yourself)
    PUT    /api/users/{id}/role    change a user's role (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import get_db_session
from portal.dependencies import RequestLogger, require_admin, require_session
from portal.logger import Logger
from portal.operation_result import success_response
from portal.roles import Role
from portal.schemas.common import Pagination
from portal.schemas.user import RoleUpdate, UserListResponse, UserResponse, UserUpdate
from portal.security import SessionUser
from portal.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", summary="List users (admin)")
async def list_users(
    page: int = Query(default=1, ge=1, description="Page number (1-based)"),
    limit: int = Query(default=10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(default=None, max_length=255, description="Match name or email"),
    role: Optional[Role] = Query(default=None),
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    users, total = await user_service.list_users(db, page=page, limit=limit, search=search, role=role)
    return success_response(
        UserListResponse(
            users=[UserResponse.model_validate(u) for u in users],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/{user_id}", summary="Get a user")
async def get_user(
    user_id: str,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    user = await user_service.get_user(db, session, user_id)
    return success_response({"user": UserResponse.model_validate(user)})


@router.put("/{user_id}", summary="Update a user")
async def update_user(
    user_id: str,
    body: UserUpdate,
    session: SessionUser = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/users")),
) -> JSONResponse:
    user = await user_service.update_user(db, session, user_id, body)
    log.info("User updated", target_user_id=user_id, fields=sorted(body.model_fields_set))
    return success_response({"user": UserResponse.model_validate(user)}, "User updated")


@router.delete("/{user_id}", summary="Delete a user (admin)")
async def delete_user(
    user_id: str,
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/users")),
) -> JSONResponse:
    await user_service.delete_user(db, admin, user_id)
    log.info("User deleted", target_user_id=user_id)
    return success_response({"deleted": True}, "User deleted")


@router.put("/{user_id}/role", summary="Change a user's role (admin)")
async def change_role(
    user_id: str,
    body: RoleUpdate,
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/users")),
) -> JSONResponse:
    user = await user_service.change_role(db, admin, user_id, body.role)
    log.info("User role changed", target_user_id=user_id, role=body.role.value)
    return success_response({"user": UserResponse.model_validate(user)}, "Role updated")
