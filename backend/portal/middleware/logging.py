"""
Portal Backend - Access Log Middleware
========================================

One record per request on the "portal.access" logger: method, path, status,
duration, client IP, request id and, when the gate resolved a session, the
user id. Bodies, cookies and Authorization headers are never logged.
Liveness probes (/health) are skipped.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from portal.middleware.request_id import request_id_var

logger = logging.getLogger("portal.access")

SKIPPED_PATHS = frozenset({"/health"})


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        # Set by AuthGateMiddleware further down the chain
        session = getattr(request.state, "session", None)
        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "client_ip": client_ip(request),
            "user_id": session.user_id if session else None,
        }
        logger.log(
            level_for_status(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms",
            fields,
            extra=fields,
        )
        return response
