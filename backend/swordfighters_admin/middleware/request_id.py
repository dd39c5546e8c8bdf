"""
Request ID middleware for correlation tracking.

Reuses a client-supplied X-Request-ID when it looks sane, otherwise
generates a UUID. The ID is stored on ``request.state.request_id`` and
echoed back in the response headers.
"""

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

# Client IDs end up in log lines; keep them short and printable.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add request ID correlation to all requests.

    Example:
        app.add_middleware(RequestIDMiddleware)

    Usage in routes:
        request_id = request.state.request_id
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)

        if not request_id or not _VALID_REQUEST_ID.match(request_id):
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        return response
