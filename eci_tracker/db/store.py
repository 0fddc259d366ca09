"""
Append-only row store for detected changes.

insert() is best-effort from the caller's point of view: it returns False
when no database is configured. query() raises StorageUnavailableError in that
case so read endpoints can fall back to live data.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import async_sessionmaker

from eci_tracker.db.models import SignatureSnapshot
from eci_tracker.db.schemas import HistoryRow, Snapshot

logger = logging.getLogger("eci.store")


class StorageUnavailableError(RuntimeError):
    """Raised when a query is made without a configured database."""


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SnapshotStore:
    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory

    @property
    def enabled(self) -> bool:
        return self._session_factory is not None

    async def insert(self, snapshot: Snapshot, change_amount: int) -> bool:
        if self._session_factory is None:
            logger.debug("Skipping persistence (no database configured)")
            return False
        async with self._session_factory() as s:
            s.add(
                SignatureSnapshot(
                    timestamp=datetime.now(timezone.utc),
                    signature_count=snapshot.signature_count,
                    goal=snapshot.goal,
                    change_amount=change_amount,
                )
            )
            await s.commit()
        logger.debug(
            "Saved snapshot: %d signatures (%+d)", snapshot.signature_count, change_amount
        )
        return True

    async def query(self, since: Optional[datetime] = None) -> list[HistoryRow]:
        """Rows ordered by timestamp ascending, optionally from `since` onwards."""
        if self._session_factory is None:
            raise StorageUnavailableError("Database is not configured")
        stmt = select(SignatureSnapshot).order_by(
            SignatureSnapshot.timestamp.asc(), SignatureSnapshot.id.asc()
        )
        if since is not None:
            stmt = stmt.where(SignatureSnapshot.timestamp >= _ensure_utc(since))
        async with self._session_factory() as s:
            result = await s.execute(stmt)
            rows = result.scalars().all()
        out = []
        for row in rows:
            item = HistoryRow.model_validate(row)
            out.append(item.model_copy(update={"timestamp": _ensure_utc(item.timestamp)}))
        return out

    async def ping(self) -> None:
        if self._session_factory is None:
            raise StorageUnavailableError("Database is not configured")
        async with self._session_factory() as s:
            await s.execute(text("SELECT 1"))
