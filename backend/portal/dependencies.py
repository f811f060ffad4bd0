"""
Portal Backend - FastAPI Dependencies
=======================================

What:  Request-scoped accessors for the objects create_app() puts on
       app.state, plus the JSON auth policy used by API routes.
How:   The session was already resolved by AuthGateMiddleware and stored on
       request.state.session; when the middleware is not installed (unit
       tests mounting a bare router) it is read from the request here.

JSON policy (API routes never redirect):
    require_session   no session      -> 401 UNAUTHORIZED
    require_admin     not ADMIN role  -> 403 FORBIDDEN
"""

from typing import Optional

from fastapi import Depends, Request

from portal.config import Settings
from portal.exceptions import ForbiddenError, UnauthorizedError
from portal.logger import Logger, LoggerFactory
from portal.rate_limit import RateLimiter
from portal.security import SessionUser, read_session
from portal.services.storage_service import StorageService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_logger_factory(request: Request) -> LoggerFactory:
    return request.app.state.logger_factory


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


def get_optional_session(request: Request) -> Optional[SessionUser]:
    if hasattr(request.state, "session"):
        return request.state.session
    settings = get_settings(request)
    session = read_session(request, settings.secret_key, settings.session_cookie_name)
    request.state.session = session
    return session


def require_session(
    session: Optional[SessionUser] = Depends(get_optional_session),
) -> SessionUser:
    if session is None:
        raise UnauthorizedError("Authentication required")
    return session


def require_admin(session: SessionUser = Depends(require_session)) -> SessionUser:
    if not session.is_admin:
        raise ForbiddenError("Admin access required")
    return session


class RequestLogger:
    """
    Dependency returning a Logger bound to `context` and the caller's session.

        @router.get("/users")
        async def list_users(log: Logger = Depends(RequestLogger("api/users"))):
    """

    def __init__(self, context: str):
        self.context = context

    def __call__(
        self,
        request: Request,
        session: Optional[SessionUser] = Depends(get_optional_session),
    ) -> Logger:
        return get_logger_factory(request).get_logger(self.context, session)
