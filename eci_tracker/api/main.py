"""
FastAPI application for the ECI signature tracker.

- Health: /health/live, /health/ready
- API: {prefix}/live, {prefix}/current, {prefix}/stats, {prefix}/history, {prefix}/monitor

The monitor is built and started once at startup; stream connections only
subscribe and unsubscribe.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from eci_tracker.core.config import settings
from eci_tracker.api.health import router as health_router
from eci_tracker.api.router import router as api_router
from eci_tracker.db.database import AsyncSessionLocal, dispose_engine, init_models
from eci_tracker.db.store import SnapshotStore
from eci_tracker.services.monitor_state import set_monitor, set_store
from eci_tracker.services.upstream import UpstreamClient
from worker.main import SignatureMonitor

logger = logging.getLogger("eci.api")


def _setup_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()

    if AsyncSessionLocal is None:
        logger.warning("DATABASE_URL not set; persistence disabled, live data only")
    elif settings.DATABASE_CREATE_TABLES:
        try:
            await init_models()
        except Exception as exc:
            logger.error("Could not create tables: %s", exc)

    store = SnapshotStore(AsyncSessionLocal)
    monitor = SignatureMonitor(client=UpstreamClient(), store=store)
    set_store(store)
    set_monitor(monitor)

    await monitor.start()

    yield

    await monitor.close()
    await dispose_engine()
    set_monitor(None)
    set_store(None)


app = FastAPI(
    title="ECI Signature Tracker",
    description="Live signature counts, history and derived stats for a European Citizens' Initiative",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(api_router, prefix=settings.API_PREFIX)
