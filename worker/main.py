"""
Signature monitor.

- Polls the ECI progression API on a fixed interval (one loop per process).
- Applies the goal override, detects count changes, persists each change.
- Notifies in-process subscribers (live stream connections) with the new snapshot.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from eci_tracker.core.config import settings
from eci_tracker.db.database import AsyncSessionLocal, dispose_engine, init_models
from eci_tracker.db.schemas import Snapshot
from eci_tracker.db.store import SnapshotStore
from eci_tracker.services.goal_override import apply_goal_override
from eci_tracker.services.subscribers import Subscriber, SubscriberManager
from eci_tracker.services.upstream import UpstreamClient, UpstreamError

logger = logging.getLogger("eci.monitor")


class SignatureMonitor:
    def __init__(
        self,
        client: UpstreamClient,
        store: SnapshotStore,
        subscribers: Optional[SubscriberManager] = None,
        goal: Optional[int] = None,
    ):
        self._client = client
        self._store = store
        self._subscribers = subscribers or SubscriberManager()
        self._goal = settings.GOAL_OVERRIDE if goal is None else goal
        self._running = False
        self._task: Optional[asyncio.Task[Any]] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._lifecycle_lock = asyncio.Lock()
        self.cached_data: Optional[Snapshot] = None
        self.last_signature_count: Optional[int] = None
        self.stats = {
            "status": "stopped",
            "polls": 0,
            "changes": 0,
            "persisted": 0,
            "errors": 0,
            "persist_errors": 0,
            "last_poll_at": None,
            "last_change_at": None,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def goal(self) -> int:
        return self._goal

    @property
    def subscribers(self) -> SubscriberManager:
        return self._subscribers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a live subscriber; it receives the cached snapshot immediately."""
        return self._subscribers.subscribe(callback, current=self.cached_data)

    def get_current(self) -> Optional[Snapshot]:
        return self.cached_data

    async def start(self, interval_sec: Optional[float] = None) -> None:
        # Waits out a stop() that is still draining its last tick.
        async with self._lifecycle_lock:
            if self._running:
                return
            interval = settings.POLL_INTERVAL_SEC if interval_sec is None else interval_sec
            self._running = True
            self._stop_event = asyncio.Event()
            self.stats["status"] = "running"
            self._task = asyncio.create_task(self._poll_loop(interval), name="eci-poll")
            logger.info(
                "Monitoring started every %.1fs (goal overridden to %d)", interval, self._goal
            )

    async def stop(self) -> None:
        """Cancel future ticks; an in-flight tick is allowed to finish."""
        async with self._lifecycle_lock:
            if not self._running:
                return
            if self._stop_event is not None:
                self._stop_event.set()
            task, self._task = self._task, None
            if task is not None:
                await asyncio.gather(task, return_exceptions=True)
            self._running = False
            self.stats["status"] = "stopped"
            logger.info("Monitoring stopped")

    async def close(self) -> None:
        await self.stop()
        await self._client.close()

    async def _poll_loop(self, interval: float) -> None:
        stop_event = self._stop_event
        while not stop_event.is_set():
            try:
                await self.check_for_changes()
            except UpstreamError as exc:
                self.stats["errors"] += 1
                logger.warning("Upstream fetch failed: %s", exc)
            except Exception as exc:
                self.stats["errors"] += 1
                logger.error("Error checking for changes: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def check_for_changes(self) -> bool:
        """
        One tick: fetch, override goal, compare. Returns True when a change was
        recorded. Upstream failures propagate to the loop, which logs them.
        """
        self.stats["polls"] += 1
        self.stats["last_poll_at"] = datetime.now(timezone.utc)
        raw = await self._client.fetch()
        data = apply_goal_override(raw, self._goal)

        if data.signature_count == self.last_signature_count:
            logger.debug(
                "No change: %d signatures (%d subscribers)",
                data.signature_count,
                self._subscribers.count,
            )
            return False

        previous = self.last_signature_count
        change_amount = 0 if previous is None else data.signature_count - previous
        logger.info(
            "Signatures changed: %s -> %d (%+d), %.2f%% of %d",
            previous,
            data.signature_count,
            change_amount,
            data.signature_count / data.goal * 100,
            data.goal,
        )

        await self._persist(data, change_amount)

        self.last_signature_count = data.signature_count
        self.cached_data = data
        self.stats["changes"] += 1
        self.stats["last_change_at"] = datetime.now(timezone.utc)

        self._subscribers.notify(data)
        return True

    async def _persist(self, data: Snapshot, change_amount: int) -> None:
        try:
            if await self._store.insert(data, change_amount):
                self.stats["persisted"] += 1
        except Exception as exc:
            self.stats["persist_errors"] += 1
            logger.error("Failed to save snapshot: %s", exc)


def build_monitor() -> SignatureMonitor:
    return SignatureMonitor(
        client=UpstreamClient(),
        store=SnapshotStore(AsyncSessionLocal),
    )


async def run_worker() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if settings.DATABASE_CREATE_TABLES:
        await init_models()
    monitor = build_monitor()
    await monitor.start()
    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await monitor.close()
        await dispose_engine()


def main() -> None:
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
