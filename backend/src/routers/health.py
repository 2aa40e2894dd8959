"""Health check router."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import text

from src.dependencies import DbSession, SettingsDep
from src.schemas.health import HealthResponse, ServiceStatus
from src.utils.logger import get_logger

router = APIRouter()
log = get_logger(__name__)

API_VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, settings: SettingsDep) -> HealthResponse:
    """
    Health check.

    Checks:
    - Database connectivity
    - Autosave configuration (reported, never failing)

    Returns:
        HealthResponse with status and service details
    """
    services = {}
    overall_status = "ok"

    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        services["database"] = ServiceStatus(
            status="healthy",
            message="Connected",
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
        )
    except Exception as e:
        log.error("health check failed", service="database", error=str(e))
        services["database"] = ServiceStatus(status="unhealthy", message="Service unavailable")
        overall_status = "degraded"

    services["autosave"] = ServiceStatus(
        status="healthy",
        message="Enabled" if settings.autosave_enabled else "Disabled",
        details={"debounce_seconds": settings.autosave_debounce_seconds},
    )

    return HealthResponse(
        status=overall_status,
        version=API_VERSION,
        services=services,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
