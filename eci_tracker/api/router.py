"""
Signature tracker API: live stream, current snapshot, stats, history.

- GET /live     — SSE stream of snapshots on change plus periodic heartbeats
- GET /current  — cached (goal-overridden) snapshot
- GET /stats    — rates, ETA, activity level, peak hour
- GET /history  — persisted change rows, last N hours or all
- GET /monitor  — poller counters and connection gauges
"""
import logging
import math
import time
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse

from eci_tracker.core.config import settings
from eci_tracker.db.schemas import CurrentOut, HistoryOut, MonitorOut, StatsOut
from eci_tracker.db.store import StorageUnavailableError
from eci_tracker.services.goal_override import apply_goal_override
from eci_tracker.services.live_stream import LiveConnection, connection_count
from eci_tracker.services.monitor_state import get_monitor, get_store
from eci_tracker.services.stats import compute_stats

router = APIRouter()
logger = logging.getLogger("eci.api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/live", summary="Live signature stream via Server-Sent Events")
async def live_stream():
    """
    Snapshot on every change, heartbeat every HEARTBEAT_SEC.
    Connect with EventSource or: curl -N http://localhost:8000/api/live
    """
    connection = LiveConnection(get_monitor())
    return StreamingResponse(
        connection.events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )


@router.get("/current", response_model=CurrentOut)
async def current():
    snapshot = get_monitor().get_current()
    if snapshot is None:
        return _error(404, "No data available")
    return CurrentOut(data=snapshot.to_wire(), timestamp=int(time.time() * 1000))


@router.get("/stats", response_model=StatsOut)
async def stats():
    """Stats from the last STATS_LOOKBACK_HOURS of rows; falls back to live data."""
    monitor = get_monitor()
    live = monitor.get_current()
    now = datetime.now(timezone.utc)
    try:
        rows = await get_store().query(
            since=now - timedelta(hours=settings.STATS_LOOKBACK_HOURS)
        )
    except StorageUnavailableError:
        rows = []
    except Exception as exc:
        logger.warning("Stats query failed, using live data: %s", exc)
        rows = []
    try:
        return compute_stats(
            apply_goal_override(rows, monitor.goal),
            live,
            monitor.goal,
            now,
            ZoneInfo(settings.STATS_TIMEZONE),
        )
    except Exception as exc:
        logger.error("Stats calculation error: %s", exc)
        return _error(500, "Failed to calculate stats")


@router.get("/history", response_model=HistoryOut)
async def history(hours: Optional[str] = None):
    """Goal-overridden change rows; `hours` is a positive number or "all"."""
    since: Optional[datetime] = None
    raw = hours if hours is not None else str(settings.HISTORY_DEFAULT_HOURS)
    if raw.strip().lower() != "all":
        try:
            window = float(raw)
        except ValueError:
            return _error(400, f"Invalid hours value: {raw!r}")
        if not math.isfinite(window) or window <= 0:
            return _error(400, f"Invalid hours value: {raw!r}")
        try:
            since = datetime.now(timezone.utc) - timedelta(hours=window)
        except OverflowError:
            since = None
    try:
        rows = await get_store().query(since=since)
    except StorageUnavailableError:
        return _error(503, "Storage unavailable")
    except Exception as exc:
        logger.error("Database query error: %s", exc)
        return _error(500, "Failed to fetch data")
    data = apply_goal_override(rows, get_monitor().goal)
    return HistoryOut(data=data, count=len(data))


@router.get("/monitor", response_model=MonitorOut)
async def monitor_status():
    monitor = get_monitor()
    return MonitorOut(
        **monitor.stats,
        running=monitor.is_running,
        last_signature_count=monitor.last_signature_count,
        subscribers=monitor.subscribers.count,
        connections=connection_count(),
    )
