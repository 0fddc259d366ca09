"""Tests for SubscriberManager fanout and eviction."""

from __future__ import annotations

from eci_tracker.db.schemas import Snapshot
from eci_tracker.services.subscribers import SubscriberManager

SNAP = Snapshot(signature_count=10, goal=100)
SNAP2 = Snapshot(signature_count=11, goal=100)


class TestSubscribe:
    def test_subscribe_without_current_delivers_nothing(self) -> None:
        manager = SubscriberManager()
        received: list[Snapshot] = []

        manager.subscribe(received.append)

        assert received == []
        assert manager.count == 1

    def test_subscribe_with_current_delivers_synchronously(self) -> None:
        manager = SubscriberManager()
        received: list[Snapshot] = []

        manager.subscribe(received.append, current=SNAP)

        assert received == [SNAP]

    def test_unsubscribe_is_idempotent(self) -> None:
        manager = SubscriberManager()
        unsubscribe = manager.subscribe(lambda s: None)

        unsubscribe()
        unsubscribe()

        assert manager.count == 0

    def test_failing_initial_delivery_evicts(self) -> None:
        manager = SubscriberManager()

        def broken(snapshot: Snapshot) -> None:
            raise RuntimeError("closed")

        manager.subscribe(broken, current=SNAP)

        assert manager.count == 0
        assert manager.evicted == 1


class TestNotify:
    def test_notify_without_subscribers_is_noop(self) -> None:
        manager = SubscriberManager()
        manager.notify(SNAP)
        assert manager.count == 0

    def test_notify_reaches_every_subscriber(self) -> None:
        manager = SubscriberManager()
        a: list[Snapshot] = []
        b: list[Snapshot] = []
        manager.subscribe(a.append)
        manager.subscribe(b.append)

        manager.notify(SNAP)

        assert a == [SNAP]
        assert b == [SNAP]

    def test_no_buffering_for_late_subscribers(self) -> None:
        """Snapshots notified before subscribing are not replayed."""
        manager = SubscriberManager()
        manager.notify(SNAP)
        received: list[Snapshot] = []

        manager.subscribe(received.append)

        assert received == []

    def test_failing_subscriber_removed_others_continue(self) -> None:
        manager = SubscriberManager()
        calls = {"broken": 0}
        good: list[Snapshot] = []

        def broken(snapshot: Snapshot) -> None:
            calls["broken"] += 1
            raise ConnectionError("write failed")

        manager.subscribe(broken)
        manager.subscribe(good.append)

        manager.notify(SNAP)
        manager.notify(SNAP2)

        assert calls["broken"] == 1
        assert good == [SNAP, SNAP2]
        assert manager.count == 1

    def test_unsubscribe_during_notify_skips_removed(self) -> None:
        """A subscriber removed mid-dispatch receives nothing further."""
        manager = SubscriberManager()
        received: dict[str, list[Snapshot]] = {"a": [], "b": []}
        handles = {}

        def a(snapshot: Snapshot) -> None:
            received["a"].append(snapshot)
            handles["b"]()

        def b(snapshot: Snapshot) -> None:
            received["b"].append(snapshot)
            handles["a"]()

        handles["a"] = manager.subscribe(a)
        handles["b"] = manager.subscribe(b)

        manager.notify(SNAP)

        # Whichever ran first removed the other before it was called.
        assert len(received["a"]) + len(received["b"]) == 1

    def test_subscribe_during_notify_does_not_break_iteration(self) -> None:
        manager = SubscriberManager()
        late: list[Snapshot] = []
        early: list[Snapshot] = []

        def adder(snapshot: Snapshot) -> None:
            early.append(snapshot)
            if len(early) == 1:
                manager.subscribe(late.append)

        manager.subscribe(adder)
        manager.notify(SNAP)
        manager.notify(SNAP2)

        assert early == [SNAP, SNAP2]
        assert late == [SNAP2]

    def test_unsubscribed_receives_nothing(self) -> None:
        manager = SubscriberManager()
        received: list[Snapshot] = []
        unsubscribe = manager.subscribe(received.append)

        unsubscribe()
        manager.notify(SNAP)

        assert received == []
