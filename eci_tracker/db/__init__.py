from eci_tracker.db.models import Base, SignatureSnapshot
from eci_tracker.db.schemas import HistoryRow, Snapshot
from eci_tracker.db.store import SnapshotStore, StorageUnavailableError

__all__ = [
    "Base",
    "HistoryRow",
    "SignatureSnapshot",
    "Snapshot",
    "SnapshotStore",
    "StorageUnavailableError",
]
