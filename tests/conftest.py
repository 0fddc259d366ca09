"""Shared pytest fixtures for the signature tracker tests.

Fixtures are organized into categories:
- Fake upstream client and row store (no network, no database)
- Monitor wired to the fakes
- History row factory
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from eci_tracker.db.schemas import HistoryRow, Snapshot
from eci_tracker.db.store import StorageUnavailableError
from eci_tracker.services.upstream import UpstreamError
from worker.main import SignatureMonitor

GOAL = 1_500_000


# =============================================================================
# Fakes
# =============================================================================


class FakeUpstreamClient:
    """Returns queued results in order; repeats the last one when exhausted.

    Each item is a signature count, a Snapshot, or an exception to raise.
    """

    def __init__(self, results: Iterable[Any] = (), goal: int = 1_000_000) -> None:
        self._results = list(results)
        self._goal = goal
        self.calls = 0
        self.closed = False

    def push(self, *results: Any) -> None:
        self._results.extend(results)

    async def fetch(self) -> Snapshot:
        self.calls += 1
        if len(self._results) > 1:
            item = self._results.pop(0)
        elif self._results:
            item = self._results[0]
        else:
            raise UpstreamError("no result queued")
        if isinstance(item, Exception):
            raise item
        if isinstance(item, Snapshot):
            return item
        return Snapshot(signature_count=item, goal=self._goal)

    async def close(self) -> None:
        self.closed = True


class FakeStore:
    """In-memory append-only row store."""

    def __init__(self, enabled: bool = True, fail_insert: bool = False) -> None:
        self.rows: list[HistoryRow] = []
        self._enabled = enabled
        self.fail_insert = fail_insert
        self.fail_query = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def insert(self, snapshot: Snapshot, change_amount: int) -> bool:
        if not self._enabled:
            return False
        if self.fail_insert:
            raise ConnectionError("database down")
        self.rows.append(
            HistoryRow(
                id=len(self.rows) + 1,
                timestamp=datetime.now(UTC),
                signature_count=snapshot.signature_count,
                goal=snapshot.goal,
                change_amount=change_amount,
            )
        )
        return True

    async def query(self, since: datetime | None = None) -> list[HistoryRow]:
        if not self._enabled:
            raise StorageUnavailableError("Database is not configured")
        if self.fail_query:
            raise ConnectionError("database down")
        return [r for r in self.rows if since is None or r.timestamp >= since]

    async def ping(self) -> None:
        if self.fail_query:
            raise ConnectionError("database down")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_client() -> FakeUpstreamClient:
    return FakeUpstreamClient()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def monitor(fake_client: FakeUpstreamClient, fake_store: FakeStore) -> SignatureMonitor:
    return SignatureMonitor(client=fake_client, store=fake_store, goal=GOAL)


@pytest.fixture
def make_row() -> Callable[..., HistoryRow]:
    """Factory for HistoryRow relative to a reference time.

    Usage:
        row = make_row(now, seconds_ago=10, count=105, change=5)
    """

    def _make(
        now: datetime,
        seconds_ago: float,
        count: int,
        change: int,
        goal: int = 1_000_000,
    ) -> HistoryRow:
        return HistoryRow(
            timestamp=now - timedelta(seconds=seconds_ago),
            signature_count=count,
            goal=goal,
            change_amount=change,
        )

    return _make


@pytest.fixture
def store_factory() -> type[FakeStore]:
    """The FakeStore class, for tests that need a differently configured store."""
    return FakeStore


@pytest.fixture
def client_factory() -> type[FakeUpstreamClient]:
    return FakeUpstreamClient
