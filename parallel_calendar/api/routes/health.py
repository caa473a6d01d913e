"""Health Checks — liveness and store readiness.

Invariants:
    - Liveness never touches the store: 200 whenever the process serves requests
    - Readiness runs a round trip through the store handle on app.state.db;
      no handle (before startup, after shutdown) counts as not ready
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from parallel_calendar.config import Settings, get_settings

SERVICE_NAME = "parallel-calendar-api"

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/")
async def liveness(request: Request):
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": request.app.version,
    }


@router.get("/ready")
async def readiness(request: Request, settings: Settings = Depends(get_settings)):
    store = getattr(request.app.state, "db", None)
    if store is None or not await store.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy"},
        "allocations": sorted(settings.allocations),
    }
