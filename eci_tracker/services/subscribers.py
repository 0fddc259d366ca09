"""
In-memory subscriber set for live snapshot fanout.

- Each subscriber is a plain callable; the monitor notifies all of them on change.
- A callback that raises is dropped for good; the others still get the snapshot.
- No buffering: notify() with nobody subscribed does nothing.
"""
import logging
from typing import Callable, Optional, Set

from eci_tracker.db.schemas import Snapshot

logger = logging.getLogger("eci.subscribers")

Subscriber = Callable[[Snapshot], None]


class SubscriberManager:
    """In-process fanout: notify(snapshot) calls every registered subscriber."""

    def __init__(self):
        self._subscribers: Set[Subscriber] = set()
        self._evicted = 0

    def subscribe(
        self, callback: Subscriber, current: Optional[Snapshot] = None
    ) -> Callable[[], None]:
        """
        Register callback and return its unsubscribe handle.
        If `current` is given it is delivered before returning so late joiners
        see the present state without waiting for the next change.
        """
        self._subscribers.add(callback)
        if current is not None:
            self._deliver(callback, current)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.discard(callback)
                logger.debug(
                    "Subscriber removed (%d remaining)", len(self._subscribers)
                )

        return unsubscribe

    def notify(self, snapshot: Snapshot) -> None:
        if not self._subscribers:
            return
        logger.debug("Notifying %d subscribers", len(self._subscribers))
        for callback in list(self._subscribers):
            # Unsubscribed while this loop was running.
            if callback not in self._subscribers:
                continue
            self._deliver(callback, snapshot)

    def _deliver(self, callback: Subscriber, snapshot: Snapshot) -> None:
        try:
            callback(snapshot)
        except Exception as exc:
            self._subscribers.discard(callback)
            self._evicted += 1
            logger.warning("Removing failed subscriber: %s", exc)

    @property
    def count(self) -> int:
        return len(self._subscribers)

    @property
    def evicted(self) -> int:
        return self._evicted
