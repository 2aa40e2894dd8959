"""Health check schemas."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ServiceStatus(BaseModel):
    """Status of one dependency."""

    status: Literal["healthy", "unhealthy"]
    message: str
    latency_ms: Optional[float] = Field(None, description="Round-trip time of the probe")
    details: dict = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Overall service health; degraded when any probed dependency is down."""

    status: Literal["ok", "degraded"]
    version: str
    services: dict[str, ServiceStatus]
    timestamp: str
