from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from tortoise import connections

from app.api.ledger_endpoints.common import get_engine
from app.ledger.engine import PresaleEngine

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
async def health_check(engine: PresaleEngine = Depends(get_engine)):
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "phase_index": engine.phases.current_phase_index,
        "supported_assets": engine.assets.get_supported_assets(),
    }


@router.get("/ready", summary="Readiness check")
async def readiness_check():
    """
    Readiness check - verifies all dependencies are available.

    Checks that the notification database answers a trivial query.
    """
    checks = {}

    try:
        await connections.get("default").execute_query("SELECT 1")
        checks["database"] = True
    except Exception:
        checks["database"] = False

    all_healthy = all(checks.values())

    return {
        "status": "ready" if all_healthy else "degraded",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
