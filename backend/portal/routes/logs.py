"""
Portal Backend - Client Log Ingestion
=======================================

POST /api/logs/client accepts one log entry from a browser (or from a
ForwardingSink in another process) and re-emits it through the server
logger, tagged with the client's context, user agent and IP.

Anonymous callers are accepted. The CLIENT_LOGS rate limit applies.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from portal.dependencies import get_logger_factory, get_optional_session
from portal.logger import LoggerFactory
from portal.middleware.logging import client_ip
from portal.middleware.rate_limit import RateLimitGuard
from portal.operation_result import success_response
from portal.rate_limit import RateLimitScope
from portal.schemas.logs import ClientLogRequest
from portal.security import SessionUser

router = APIRouter(prefix="/api/logs", tags=["Logs"])


@router.post(
    "/client",
    summary="Ingest a client-side log entry",
    dependencies=[Depends(RateLimitGuard(RateLimitScope.CLIENT_LOGS))],
)
async def ingest_client_log(
    body: ClientLogRequest,
    request: Request,
    session: Optional[SessionUser] = Depends(get_optional_session),
    factory: LoggerFactory = Depends(get_logger_factory),
) -> JSONResponse:
    info = body.client_info
    # Never the forwarding sink: ingested entries would be posted back here
    log = factory.server_logger(f"client/{info.log_context or 'client'}", session)
    # Server-side fields win over client-supplied context keys
    fields = {
        **body.context,
        "client_service": info.service,
        "user_agent": info.user_agent,
        "url": info.url,
        "referrer": info.referrer,
        "client_timestamp": body.timestamp,
        "ip": client_ip(request),
    }
    log.log(body.level, f"[CLIENT] {body.message}", **fields)
    return success_response({"received": True})
