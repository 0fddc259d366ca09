"""Domain snapshots and API response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    """
    Most recently observed progress. goal is None only on a raw upstream
    snapshot that did not report one; overridden snapshots always carry it.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    signature_count: int = Field(alias="signatureCount", ge=0)
    goal: Optional[int] = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class HistoryRow(BaseModel):
    """One persisted change (signature_snapshots row)."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    timestamp: datetime
    signature_count: int
    goal: int
    change_amount: int = 0


class CurrentOut(BaseModel):
    data: dict
    timestamp: int


class HistoryOut(BaseModel):
    data: list[HistoryRow]
    count: int


class StatsOut(BaseModel):
    """Derived statistics (GET /stats)."""
    secRate: float = 0
    minRate: float = 0
    hourlyRate: int = 0
    dailyRate: int = 0
    peakHour: int = 0
    totalToday: int = 0
    timeToGoal: str = "No data"
    activityLevel: str = "None"
    currentSignatures: int = 0
    goal: int = 0


class MonitorOut(BaseModel):
    """Poller counters plus subscriber/connection gauges."""
    status: str = "stopped"
    running: bool = False
    polls: int = 0
    changes: int = 0
    persisted: int = 0
    errors: int = 0
    persist_errors: int = 0
    last_poll_at: Optional[datetime] = None
    last_change_at: Optional[datetime] = None
    last_signature_count: Optional[int] = None
    subscribers: int = 0
    connections: int = 0
