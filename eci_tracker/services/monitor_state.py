"""
Shared process state for the API (monitor, store).

Set at app lifespan start; read by API routes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from eci_tracker.db.store import SnapshotStore

if TYPE_CHECKING:
    from worker.main import SignatureMonitor

_monitor: Optional[SignatureMonitor] = None
_store: Optional[SnapshotStore] = None


def set_monitor(m: Optional[SignatureMonitor]) -> None:
    global _monitor
    _monitor = m


def get_monitor() -> SignatureMonitor:
    if _monitor is None:
        raise RuntimeError("Monitor not initialized")
    return _monitor


def set_store(s: Optional[SnapshotStore]) -> None:
    global _store
    _store = s


def get_store() -> SnapshotStore:
    if _store is None:
        raise RuntimeError("Store not initialized")
    return _store
