"""
Swordfighters Admin Auth - FastAPI Application Entry Point

Passwordless admin authentication with WebAuthn security keys. This
module wires middleware, routers, exception handlers and the lifespan
(logging, database, challenge janitor).
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from swordfighters_admin import __version__
from swordfighters_admin.api.routes import auth, health, webauthn
from swordfighters_admin.core.config import settings
from swordfighters_admin.core.database import async_session_maker, close_db, init_db
from swordfighters_admin.core.exceptions import AdminAuthError
from swordfighters_admin.core.logging_config import setup_logging
from swordfighters_admin.middleware.logging import LoggingMiddleware
from swordfighters_admin.middleware.rate_limit import RateLimitMiddleware
from swordfighters_admin.middleware.request_id import RequestIDMiddleware
from swordfighters_admin.middleware.security_headers import SecurityHeadersMiddleware
from swordfighters_admin.services.challenges import ChallengeJanitor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Startup:
        - Set up structured logging
        - Initialize database (create tables when DB_CREATE_ALL)
        - Start the challenge janitor

    Shutdown:
        - Stop the janitor
        - Close database connections
    """
    setup_logging(level=settings.log_level, json_format=settings.log_json)

    await init_db()

    janitor: Optional[ChallengeJanitor] = None
    if settings.janitor_enabled:
        janitor = ChallengeJanitor(
            async_session_maker,
            interval_seconds=settings.janitor_interval_seconds,
        )
        janitor.start()
    app.state.janitor = janitor

    logger.info(
        "Admin auth API started",
        extra={"environment": settings.environment, "rp_id": settings.rp_id}
    )

    yield

    if janitor is not None:
        await janitor.stop()
    await close_db()


def error_body(message: str, details: Any = None) -> Dict[str, Any]:
    """Error response body; ``details`` is dropped in production."""
    body: Dict[str, Any] = {"error": message}
    if details is not None and not settings.is_production:
        body["details"] = details
    return body


async def admin_auth_error_handler(request: Request, exc: AdminAuthError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.detail),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors: 400, never 422."""
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.warning(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
            "error_count": len(details),
        }
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation error", details),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
            "exception_type": type(exc).__name__,
        },
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", str(exc)),
    )


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Middleware runs in reverse order of registration (last registered runs
    first): CORS, request ID, logging, rate limit, security headers.
    """
    application = FastAPI(
        title=settings.project_name,
        version=__version__,
        description="Passwordless admin authentication with WebAuthn security keys",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_exception_handler(AdminAuthError, admin_auth_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)

    application.add_middleware(
        SecurityHeadersMiddleware,
        api_prefix=settings.api_prefix,
        enable_hsts=settings.is_production,
    )
    application.add_middleware(
        RateLimitMiddleware,
        ceremony_limit=settings.ceremony_rate_limit,
        default_limit=settings.default_rate_limit,
        enabled=settings.rate_limit_enabled,
    )
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    application.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
    application.include_router(
        webauthn.router,
        prefix=f"{settings.api_prefix}/webauthn",
        tags=["webauthn"],
    )
    application.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])

    return application


app = create_app()
