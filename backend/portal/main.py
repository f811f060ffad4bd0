"""
Portal Backend - FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) is the composition root: it builds the rate
       limiter, its sweeper, the logger factory and the storage service once,
       stores them on app.state, and wires middleware, exception handlers
       and routers around them.
Who:   uvicorn (portal.main:app) and the test suite (create_app(test_settings)).

Middleware chain (outermost first):
    RequestID -> RequestLogging -> AuthGate -> GZip -> CORS -> route

Lifecycle:
    Startup:   configure logging, validate configuration, start the sweeper
    Shutdown:  stop the sweeper, flush log forwarding, dispose the engine
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal import __version__
from portal.config import Settings, settings as default_settings
from portal.database import dispose_engine
from portal.exceptions import PortalError, RateLimitExceededError
from portal.logger import LoggerFactory
from portal.logging_config import configure_logging
from portal.middleware.auth import AuthGateMiddleware
from portal.middleware.logging import RequestLoggingMiddleware
from portal.middleware.rate_limit import rate_limit_response
from portal.middleware.request_id import RequestIDMiddleware, request_id_var
from portal.operation_result import ErrorCode, error, error_response
from portal.rate_limit import RateLimitDecision, RateLimiter, RateLimitSweeper
from portal.routes import articles, auth, categories, health, logs, storage, user, users
from portal.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Plain HTTP errors raised by Starlette itself (unknown route, wrong method)
_CODE_BY_STATUS = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
}


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    configure_logging(config.log_level, config.log_json)
    logger.info("Portal backend %s starting up (environment=%s)", __version__, config.environment)

    try:
        config.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks still report, and the log says what to fix
        logger.error("Configuration error: %s", e)

    app.state.rate_limit_sweeper.start()
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Portal backend shutting down...")
    await app.state.rate_limit_sweeper.stop()
    app.state.logger_factory.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions onto the {success: false, error, code, details} envelope.

        RateLimitExceededError    -> 429 with X-RateLimit-* and Retry-After
        PortalError subclasses    -> status_for_code(exc.code)
        RequestValidationError    -> 400 VALIDATION_ERROR with per-field errors
        Starlette HTTPException   -> its own status
        Exception (fallback)      -> 500 INTERNAL_SERVER_ERROR

    `context` on PortalError is logged, never returned.
    """

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        details = exc.details or {}
        decision = details.get("decision")
        if isinstance(decision, RateLimitDecision):
            return rate_limit_response(decision, details.get("now"))
        return error_response(exc.to_result(), headers={"Retry-After": str(exc.retry_after)})

    @app.exception_handler(PortalError)
    async def handle_portal_error(request: Request, exc: PortalError):
        result = exc.to_result()
        rid = request_id_var.get("")
        if result.code == ErrorCode.INTERNAL_SERVER_ERROR.value:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return error_response(result)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return error_response(
            "Invalid request data",
            ErrorCode.VALIDATION_ERROR,
            details={"errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = _CODE_BY_STATUS.get(exc.status_code, ErrorCode.INTERNAL_SERVER_ERROR)
        return error_response(
            str(exc.detail),
            code,
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        result = error(
            "An unexpected error occurred. Please try again or contact support.",
            ErrorCode.INTERNAL_SERVER_ERROR,
            details={"request_id": rid} if rid else None,
        )
        return error_response(result)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="Portal API",
        description="Content portal backend: accounts, articles, categories, file storage and client logs.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared services ───────────────────────────────────────────────────
    rate_limiter = RateLimiter.from_settings(settings)
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.rate_limit_sweeper = RateLimitSweeper(rate_limiter, settings.rate_limit_sweep_interval)
    app.state.logger_factory = LoggerFactory.from_settings(settings)
    app.state.storage = StorageService(settings.storage_root)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        AuthGateMiddleware,
        secret_key=settings.secret_key,
        cookie_name=settings.session_cookie_name,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(user.router)
    app.include_router(articles.router)
    app.include_router(categories.router)
    app.include_router(storage.router)
    app.include_router(logs.router)

    return app


# uvicorn portal.main:app
app = create_app()
