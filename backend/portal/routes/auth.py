"""
Portal Backend - Auth Route Handlers
======================================

    POST /api/auth/register         create an account (201)
    POST /api/auth/login            verify credentials, set the session cookie
    POST /api/auth/logout           clear the session cookie
    POST /api/auth/reset-password   request a reset link (same answer for every address)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import Settings
from portal.database import get_db_session
from portal.dependencies import RequestLogger, get_settings
from portal.logger import Logger
from portal.operation_result import success_response
from portal.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, ResetPasswordRequest
from portal.schemas.user import ProfileResponse
from portal.services.auth_service import RESET_MESSAGE, auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=201, summary="Register a new account")
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
    log: Logger = Depends(RequestLogger("api/auth/register")),
) -> JSONResponse:
    user = await auth_service.register(db, settings, str(body.email), body.password, body.name)
    log.info("User registered", new_user_id=str(user.id))
    return success_response(
        {"user": ProfileResponse.model_validate(user)},
        "User created successfully",
        status_code=201,
    )


@router.post("/login", summary="Sign in with email and password")
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    token, user = await auth_service.authenticate(db, settings, str(body.email), body.password)
    response = success_response(
        LoginResponse(token=token, user=ProfileResponse.model_validate(user)),
        "Signed in",
    )
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )
    return response


@router.post("/logout", summary="Sign out")
async def logout(settings: Settings = Depends(get_settings)) -> JSONResponse:
    response = success_response(None, "Signed out")
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.post("/reset-password", summary="Request a password reset email")
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    log: Logger = Depends(RequestLogger("api/auth/reset-password")),
) -> JSONResponse:
    token = await auth_service.request_password_reset(db, str(body.email))
    if token is not None:
        log.info("Password reset requested", expires_at=token.expires_at.isoformat())
    return success_response({"message": RESET_MESSAGE}, "Password reset email sent")
