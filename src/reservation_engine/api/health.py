"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text

from reservation_engine import __version__
from reservation_engine.api.dependencies import RetirementDep, SettingsDep
from reservation_engine.api.rate_limits import RateLimits, limiter
from reservation_engine.db.session import Database


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    environment: str
    checks: dict[str, Any]


@router.get("/health")
@limiter.limit(RateLimits.HEALTH)
async def health_check(
    request: Request,
    settings: SettingsDep,
    scheduler: RetirementDep,
) -> HealthResponse:
    """Perform health check.

    Components checked:
    - API: Always ok if reachable
    - Database: Connectivity test via SELECT 1
    - Retirement: Background job state and counters
    """
    checks: dict[str, Any] = {
        "api": "ok",
        "database": await _check_database(request.app.state.database),
        "retirement": _check_retirement(scheduler),
    }

    database_ok = checks["database"] == "ok"

    return HealthResponse(
        status="healthy" if database_ok else "unhealthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """Check if the service is alive.

    Simple check that the process is running and can respond.
    """
    return {"status": "alive"}


async def _check_database(database: Database) -> str | dict[str, Any]:
    """Check database connectivity.

    Returns:
        "ok" if connected, error details otherwise
    """
    try:
        async with database.session() as db:
            result = await db.execute(text("SELECT 1"))
            result.fetchone()
        return "ok"
    except Exception as e:
        return {
            "status": "error",
            "message": str(e),
        }


def _check_retirement(scheduler) -> str | dict[str, Any]:
    if scheduler is None:
        return "disabled"
    return {
        "status": scheduler.state.value,
        **scheduler.metrics.to_dict(),
    }
