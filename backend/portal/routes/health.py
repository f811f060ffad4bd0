"""
Portal Backend - Health Check Routes
======================================

What:  A public liveness probe and an admin-only diagnostics endpoint.
How:   Both run SELECT 1 against the database. The probe reports status only;
       the admin endpoint adds query latency and host information.
Who:   Load balancers and Docker (GET /health), admins (GET /api/health).

Status levels:
    healthy    database reachable            HTTP 200
    unhealthy  database unreachable          HTTP 503
"""

import logging
import os
import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from portal import __version__
from portal.database import engine
from portal.dependencies import RequestLogger, require_admin
from portal.logger import Logger
from portal.operation_result import error_response, success_response
from portal.schemas.health import DatabaseHealth, DetailedHealthResponse, HealthResponse, SystemInfo
from portal.security import SessionUser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


async def _ping_database() -> float:
    """Runs SELECT 1 and returns the round trip in milliseconds."""
    started = time.perf_counter()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return (time.perf_counter() - started) * 1000


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Liveness probe used by Docker health checks and load balancers.",
)
async def health_check() -> JSONResponse:
    db_status = "connected"
    overall = "healthy"
    try:
        await _ping_database()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=200 if overall == "healthy" else 503,
        content=body.model_dump(),
    )


@router.get(
    "/api/health",
    summary="Detailed health diagnostics (admin)",
)
async def detailed_health(
    admin: SessionUser = Depends(require_admin),
    log: Logger = Depends(RequestLogger("api/health")),
) -> JSONResponse:
    try:
        latency = await _ping_database()
    except Exception as e:
        log.error("Health check failed", error=e)
        return error_response("Health check failed", status_code=503)

    load_average = None
    if hasattr(os, "getloadavg"):
        load_average = [round(value, 2) for value in os.getloadavg()]

    report = DetailedHealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        database=DatabaseHealth(connected=True, latency_ms=round(latency, 2)),
        system=SystemInfo(
            platform=platform.system().lower(),
            arch=platform.machine(),
            python_version=platform.python_version(),
            cpu_count=os.cpu_count(),
            load_average=load_average,
            uptime_seconds=round(time.time() - _start_time, 2),
        ),
    )
    return success_response(report)
