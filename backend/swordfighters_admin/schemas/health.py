"""
Pydantic schemas for health check endpoints.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """
    Response model for basic health check.

    Attributes:
        status: Health status ("ok" if service is running)
        timestamp: Current UTC timestamp
    """
    status: Literal["ok"] = Field(
        description="Health status indicator"
    )
    timestamp: datetime = Field(
        description="Current UTC timestamp"
    )


class HealthCheckDetail(BaseModel):
    healthy: bool
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class ReadinessResponse(BaseModel):
    """
    Response model for readiness probe.

    Attributes:
        status: "ready" if every check passed
        checks: Individual check results (db, janitor)
        timestamp: Current UTC timestamp
    """
    status: Literal["ready", "not_ready"]
    checks: Dict[str, HealthCheckDetail]
    timestamp: datetime
