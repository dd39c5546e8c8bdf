"""
Logging middleware for request/response tracking.

Logs every HTTP request with method, path, status, latency and the
correlation ID. Request bodies are never logged (they carry WebAuthn
responses).

Must be registered AFTER RequestIDMiddleware to access request_id.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from swordfighters_admin.core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    Example:
        app.add_middleware(LoggingMiddleware)
        app.add_middleware(RequestIDMiddleware)  # registered last, runs first

    Log output (JSON):
        {
            "timestamp": "2026-01-12T10:30:00.123456+00:00",
            "level": "INFO",
            "message": "Request completed",
            "method": "POST",
            "path": "/api/admin/webauthn/authenticate/options",
            "status_code": 200,
            "latency_ms": 12.5,
            "request_id": "abc-123"
        }
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        method = request.method
        path = request.url.path
        request_id = getattr(request.state, "request_id", None)

        logger.debug(
            "Request started",
            extra={"method": method, "path": path, "request_id": request_id}
        )

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                extra={
                    "method": method,
                    "path": path,
                    "latency_ms": round(latency_ms, 2),
                    "request_id": request_id,
                    "exception_type": type(exc).__name__,
                },
                exc_info=True
            )
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "Request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "latency_ms": round(latency_ms, 2),
                "request_id": request_id,
            }
        )

        return response
