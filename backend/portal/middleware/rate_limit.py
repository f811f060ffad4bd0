"""
Portal Backend - Rate Limit Guard
===================================

What:  Per-route rate limiting as a FastAPI dependency.
How:   RateLimitGuard(scope) resolves the caller's identifier (user id when
       signed in, otherwise the client IP), asks the app's RateLimiter for a
       decision and raises RateLimitExceededError when it is denied. The
       exception handler registered by create_app() renders the 429 with
       rate_limit_response().
Who:   Routes that declare `dependencies=[Depends(RateLimitGuard(...))]`.
When:  Before the handler body runs; allowed requests continue untouched.

429 contract:
    body     {"success": false, "error": "Rate limit exceeded",
              "code": "RATE_LIMIT_EXCEEDED",
              "data": {"limit", "remaining", "resetTime" (ISO-8601)}}
    headers  X-RateLimit-Limit, X-RateLimit-Remaining,
             X-RateLimit-Reset (epoch ms), Retry-After (seconds)

The body is built by hand rather than through the OperationResult helpers;
clients rely on the `data` block next to the error fields.
"""

import logging
import time
from typing import Optional

from fastapi import Depends, Request
from starlette.responses import JSONResponse

from portal.dependencies import get_optional_session, get_rate_limiter
from portal.exceptions import RateLimitExceededError
from portal.operation_result import ErrorCode
from portal.rate_limit import RateLimitDecision, RateLimitScope, resolve_identifier
from portal.security import SessionUser

logger = logging.getLogger(__name__)


class RateLimitGuard:
    def __init__(self, scope: RateLimitScope = RateLimitScope.GENERAL):
        self.scope = scope

    def __call__(
        self,
        request: Request,
        session: Optional[SessionUser] = Depends(get_optional_session),
    ) -> RateLimitDecision:
        limiter = get_rate_limiter(request)
        identifier = resolve_identifier(request.headers, session.user_id if session else None)
        decision = limiter.check(identifier, self.scope)
        request.state.rate_limit = decision

        if not decision.allowed:
            now = limiter.now()
            raise RateLimitExceededError(
                retry_after=decision.retry_after(now),
                details={"decision": decision, "now": now},
                context={"identifier": identifier, "scope": self.scope.value},
            )
        return decision


def rate_limit_headers(decision: RateLimitDecision, now: Optional[float] = None) -> dict:
    now = time.time() if now is None else now
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at_ms),
        "Retry-After": str(decision.retry_after(now)),
    }


def rate_limit_response(decision: RateLimitDecision, now: Optional[float] = None) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Rate limit exceeded",
            "code": ErrorCode.RATE_LIMIT_EXCEEDED.value,
            "data": {
                "limit": decision.limit,
                "remaining": decision.remaining,
                "resetTime": decision.reset_at_iso,
            },
        },
        headers=rate_limit_headers(decision, now),
    )
