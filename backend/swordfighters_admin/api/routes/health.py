"""
Health check endpoints for monitoring and readiness probes.

- Liveness probe: /health
- Readiness probe: /health/ready (database and janitor)
"""

import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Request, Response, status

from swordfighters_admin.core.database import check_connection
from swordfighters_admin.schemas.health import (
    HealthCheckDetail,
    HealthResponse,
    ReadinessResponse,
)


router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def health_check() -> HealthResponse:
    """
    Basic liveness probe. Always 200 while the process is serving.

    Example response:
        {"status": "ok", "timestamp": "2026-01-12T10:30:00.123456Z"}
    """
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """
    Readiness probe.

    Returns 503 when the database is unreachable. The janitor is reported
    for visibility only; it is not needed for correct behavior.
    """
    db_start = time.perf_counter()
    db_healthy = await check_connection()
    db_latency = (time.perf_counter() - db_start) * 1000

    janitor = getattr(request.app.state, "janitor", None)

    checks: Dict[str, HealthCheckDetail] = {
        "db": HealthCheckDetail(
            healthy=db_healthy,
            latency_ms=round(db_latency, 2),
            error=None if db_healthy else "Database connection failed or timed out",
        ),
        "janitor": HealthCheckDetail(
            healthy=True,
            error=None if janitor is None or janitor.running else "Janitor is not running",
        ),
    }

    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if db_healthy else "not_ready",
        checks=checks,
        timestamp=datetime.now(timezone.utc),
    )
