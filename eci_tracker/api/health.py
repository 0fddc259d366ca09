"""Health endpoints: liveness and readiness."""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from eci_tracker.services.monitor_state import get_monitor, get_store

router = APIRouter(tags=["health"])
logger = logging.getLogger("eci.health")


@router.get("/health/live")
async def liveness():
    """Liveness: process is running. No dependencies checked."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness():
    """Readiness: poller is running and, when configured, the database answers."""
    errors = []
    if not get_monitor().is_running:
        errors.append("monitor")

    store = get_store()
    if store.enabled:
        try:
            await store.ping()
        except Exception as e:
            logger.warning("DB readiness check failed: %s", e)
            errors.append("database")

    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "errors": errors},
        )
    return {"status": "ok", "database": "enabled" if store.enabled else "disabled"}
