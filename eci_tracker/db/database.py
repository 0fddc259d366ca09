"""
Async SQLAlchemy engine and session factory.

Both are None when DATABASE_URL is empty; the store then skips persistence
and the live path runs on in-memory state only.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from eci_tracker.core.config import settings
from eci_tracker.db.models import Base

logger = logging.getLogger("eci.db")

engine: Optional[AsyncEngine] = (
    create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
    if settings.has_database
    else None
)
AsyncSessionLocal: Optional[async_sessionmaker] = (
    async_sessionmaker(engine, expire_on_commit=False) if engine is not None else None
)


async def init_models(target: Optional[AsyncEngine] = None) -> None:
    """Create tables if missing."""
    target = target or engine
    if target is None:
        return
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("signature_snapshots table ready")


async def dispose_engine() -> None:
    if engine is not None:
        await engine.dispose()
