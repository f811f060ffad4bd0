"""
Portal Backend - Request ID Middleware
========================================

What:  Assigns a correlation id to every request and echoes it back.
How:   Uses the client's X-Request-ID header when present, otherwise a short
       uuid4. The id is stored in a ContextVar (read by the exception
       handlers), on request.state, and in structlog's contextvars so every
       log line written while handling the request carries `request_id`.
Who:   Applied to every request via Starlette middleware.
"""

import uuid
from contextvars import ContextVar

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local; concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        structlog.contextvars.bind_contextvars(request_id=rid)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
