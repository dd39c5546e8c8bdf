"""HTTP middleware"""

from swordfighters_admin.middleware.logging import LoggingMiddleware
from swordfighters_admin.middleware.rate_limit import RateLimitMiddleware, TokenBucket, get_client_ip
from swordfighters_admin.middleware.request_id import RequestIDMiddleware
from swordfighters_admin.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    'LoggingMiddleware',
    'RateLimitMiddleware',
    'RequestIDMiddleware',
    'SecurityHeadersMiddleware',
    'TokenBucket',
    'get_client_ip',
]
