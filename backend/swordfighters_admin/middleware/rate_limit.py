"""
Per-IP rate limiting using a token bucket.

WebAuthn ceremony endpoints get a stricter budget than the rest of the
API; the two tiers use separate buckets so browsing the credential list
does not eat into the login budget.

Buckets live in process memory. Running several workers multiplies the
effective limit by the worker count.
"""

import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CEREMONY_PATH_MARKER = "/webauthn/"
BUCKET_IDLE_TIMEOUT = 600


def get_client_ip(request: Request) -> str:
    """
    Best-effort client IP.

    Honors the first X-Forwarded-For hop, which is only trustworthy behind
    a proxy that overwrites the header.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class TokenBucket:
    """
    Token bucket refilled continuously up to ``capacity``.

    Attributes:
        capacity: Burst size
        refill_rate: Tokens added per second
        tokens: Tokens currently available
    """

    def __init__(self, capacity: int, refill_rate: float):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self.last_refill = time.monotonic()

    def consume(self, tokens: int = 1) -> bool:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def get_wait_time(self) -> float:
        """Seconds until one token is available."""
        if self.tokens >= 1:
            return 0.0
        return (1 - self.tokens) / self.refill_rate


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware with one bucket per (IP, tier).

    Example:
        app.add_middleware(
            RateLimitMiddleware,
            ceremony_limit=10,
            default_limit=60,
        )

    Rejected requests get a 429 with the API's error body and a
    Retry-After header.
    """

    def __init__(
        self,
        app,
        ceremony_limit: int = 10,
        default_limit: int = 60,
        enabled: bool = True,
        cleanup_interval: int = 300,
    ):
        super().__init__(app)
        self.ceremony_limit = ceremony_limit
        self.default_limit = default_limit
        self.enabled = enabled
        self.cleanup_interval = cleanup_interval

        # {(ip, tier): (bucket, last_access)}
        self.buckets: Dict[Tuple[str, str], Tuple[TokenBucket, float]] = {}
        self.last_cleanup = time.monotonic()

        logger.info(
            "Rate limiting initialized",
            extra={
                "enabled": enabled,
                "ceremony_limit": ceremony_limit,
                "default_limit": default_limit,
            }
        )

    def _get_tier(self, path: str) -> Tuple[str, int]:
        if CEREMONY_PATH_MARKER in path:
            return "ceremony", self.ceremony_limit
        return "default", self.default_limit

    def _get_or_create_bucket(self, key: Tuple[str, str], limit: int) -> TokenBucket:
        now = time.monotonic()

        if now - self.last_cleanup > self.cleanup_interval:
            self._cleanup_old_buckets(now)

        if key in self.buckets:
            bucket, _ = self.buckets[key]
            self.buckets[key] = (bucket, now)
            return bucket

        bucket = TokenBucket(capacity=limit, refill_rate=limit / 60.0)
        self.buckets[key] = (bucket, now)
        return bucket

    def _cleanup_old_buckets(self, now: float) -> None:
        stale = [
            key for key, (_, last_access) in self.buckets.items()
            if now - last_access > BUCKET_IDLE_TIMEOUT
        ]
        for key in stale:
            del self.buckets[key]

        if stale:
            logger.info("Cleaned up old rate limit buckets", extra={"count": len(stale)})

        self.last_cleanup = now

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        if not self.enabled or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = get_client_ip(request)
        path = request.url.path
        tier, limit = self._get_tier(path)
        bucket = self._get_or_create_bucket((client_ip, tier), limit)

        if not bucket.consume():
            retry_after = int(bucket.get_wait_time()) + 1

            logger.warning(
                "Rate limit exceeded",
                extra={
                    "client_ip": client_ip,
                    "path": path,
                    "tier": tier,
                    "limit": limit,
                    "request_id": getattr(request.state, "request_id", None),
                }
            )

            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests. Please try again later."},
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                }
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(int(bucket.tokens))
        return response
