"""
Portal Backend - Auth/CSRF Gate Middleware
============================================

What:  Decides, once per request and before routing, whether the request may
       proceed, must be redirected, or is rejected.
How:   classify_path() maps a path to PUBLIC / PROTECTED / ADMIN and decide()
       combines that with the method, Origin/Host headers and session into a
       GateDecision. decide() is a pure function; the middleware only reads
       inputs from the request and renders the decision.
Who:   Applied to every request via Starlette middleware.

Decision order:
    1. CSRF: mutating /api requests whose Origin host differs from Host -> 403
    2. Authenticated visitors of /auth/* pages -> /dashboard
    3. Public paths -> allowed
    4. No session -> /auth/login
    5. Admin paths without the ADMIN role -> /dashboard?error=unauthorized

API routes are public here; they enforce sessions with the JSON dependencies
in portal.dependencies (401/403 envelopes instead of redirects).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from portal.security import SessionUser, read_session

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
DASHBOARD_PATH = "/dashboard"
UNAUTHORIZED_DASHBOARD_PATH = "/dashboard?error=unauthorized"

CSRF_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

ADMIN_PREFIXES = ("/admin", "/dev")
PROTECTED_PREFIXES = ("/dashboard", "/profile")
PUBLIC_PREFIXES = (
    "/auth",
    "/api",
    "/blog",
    "/privacy-policy",
    "/contact-us",
    "/terms-of-service",
    "/health",
    "/docs",
    "/redoc",
    "/static",
)
PUBLIC_PATHS = frozenset({"/", "/openapi.json", "/favicon.ico"})


class RouteClass(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    ADMIN = "admin"


class GateOutcome(str, Enum):
    ALLOWED = "allowed"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    REDIRECT_TO_DASHBOARD = "redirect_to_dashboard"
    REJECTED = "rejected"


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    location: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is GateOutcome.ALLOWED


ALLOW = GateDecision(GateOutcome.ALLOWED)
REJECT_CSRF = GateDecision(GateOutcome.REJECTED)


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str) -> RouteClass:
    if any(_under(path, prefix) for prefix in ADMIN_PREFIXES):
        return RouteClass.ADMIN
    if any(_under(path, prefix) for prefix in PROTECTED_PREFIXES):
        return RouteClass.PROTECTED
    if path in PUBLIC_PATHS or any(_under(path, prefix) for prefix in PUBLIC_PREFIXES):
        return RouteClass.PUBLIC
    return RouteClass.PROTECTED


def csrf_violation(method: str, path: str, origin: Optional[str], host: Optional[str]) -> bool:
    """True when a mutating API request comes from a different origin."""
    if method.upper() not in CSRF_METHODS or not _under(path, "/api"):
        return False
    if not origin or not host:
        return False
    # "null" and other unparseable origins have no netloc and never match
    return urlparse(origin).netloc.lower() != host.lower()


def decide(
    method: str,
    path: str,
    origin: Optional[str],
    host: Optional[str],
    session: Optional[SessionUser],
) -> GateDecision:
    if csrf_violation(method, path, origin, host):
        return REJECT_CSRF

    if session is not None and _under(path, "/auth"):
        return GateDecision(GateOutcome.REDIRECT_TO_DASHBOARD, DASHBOARD_PATH)

    route_class = classify_path(path)
    if route_class is RouteClass.PUBLIC:
        return ALLOW
    if session is None:
        return GateDecision(GateOutcome.REDIRECT_TO_LOGIN, LOGIN_PATH)
    if route_class is RouteClass.ADMIN and not session.is_admin:
        return GateDecision(GateOutcome.REDIRECT_TO_DASHBOARD, UNAUTHORIZED_DASHBOARD_PATH)
    return ALLOW


class AuthGateMiddleware(BaseHTTPMiddleware):
    """
    Renders decide() for every request.

    The resolved session (or None) is stored on request.state.session so the
    API dependencies do not decode the token a second time.
    """

    def __init__(self, app, secret_key: str, cookie_name: str):
        super().__init__(app)
        self._secret_key = secret_key
        self._cookie_name = cookie_name

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        session = read_session(request, self._secret_key, self._cookie_name)
        request.state.session = session

        decision = decide(
            request.method,
            request.url.path,
            request.headers.get("origin"),
            request.headers.get("host"),
            session,
        )

        if decision.outcome is GateOutcome.REJECTED:
            logger.warning(
                "CSRF validation failed: %s %s origin=%s host=%s",
                request.method,
                request.url.path,
                request.headers.get("origin"),
                request.headers.get("host"),
            )
            return JSONResponse(status_code=403, content={"error": "CSRF validation failed"})

        if decision.location is not None:
            return RedirectResponse(url=decision.location, status_code=307)

        return await call_next(request)
