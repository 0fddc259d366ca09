from eci_tracker.services.goal_override import apply_goal_override
from eci_tracker.services.live_stream import LiveConnection, connection_count
from eci_tracker.services.monitor_state import (
    get_monitor,
    get_store,
    set_monitor,
    set_store,
)
from eci_tracker.services.subscribers import SubscriberManager

__all__ = [
    "LiveConnection",
    "SubscriberManager",
    "apply_goal_override",
    "connection_count",
    "get_monitor",
    "get_store",
    "set_monitor",
    "set_store",
]
