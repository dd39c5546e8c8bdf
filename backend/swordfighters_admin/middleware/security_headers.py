"""
Security headers for a JSON-only API.

The admin API never serves HTML, so the Content-Security-Policy denies
everything and responses under the API prefix are marked uncacheable
(ceremony options carry single-use challenges).

References:
- OWASP Secure Headers Project: https://owasp.org/www-project-secure-headers/
"""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

API_CSP_POLICY = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every response.

    Headers:
        X-Content-Type-Options: nosniff
        X-Frame-Options: DENY
        Referrer-Policy: no-referrer
        Content-Security-Policy: deny-all policy for JSON responses
        Cache-Control: no-store (API prefix only)
        Strict-Transport-Security: production only

    The interactive docs (/docs, /redoc) load scripts, so they are left
    without a CSP.

    Example:
        app.add_middleware(
            SecurityHeadersMiddleware,
            api_prefix="/api/admin",
            enable_hsts=settings.is_production,
        )
    """

    def __init__(
        self,
        app,
        api_prefix: str = "/api/admin",
        enable_hsts: bool = False,
        csp_policy: Optional[str] = None,
    ):
        super().__init__(app)
        self.api_prefix = api_prefix
        self.enable_hsts = enable_hsts
        self.csp_policy = csp_policy or API_CSP_POLICY

        logger.info(
            "Security headers middleware initialized",
            extra={"api_prefix": api_prefix, "enable_hsts": enable_hsts}
        )

    def _is_docs_path(self, path: str) -> bool:
        return path.startswith("/docs") or path.startswith("/redoc")

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        response = await call_next(request)
        path = request.url.path

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"

        if not self._is_docs_path(path):
            response.headers["Content-Security-Policy"] = self.csp_policy

        if path.startswith(self.api_prefix):
            response.headers["Cache-Control"] = "no-store"

        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE

        return response
