"""
Goal override: replace whatever goal upstream reports with the configured constant.

Applies to single records (pydantic models or mappings) and to collections of
them; returns copies, never mutates the input.
"""
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel

from eci_tracker.core.config import settings


def _override_one(item: Any, goal: int) -> Any:
    if isinstance(item, BaseModel):
        return item.model_copy(update={"goal": goal})
    if isinstance(item, Mapping):
        return {**item, "goal": goal}
    raise TypeError(f"Cannot apply goal override to {type(item).__name__}")


def apply_goal_override(data: Any, goal: Optional[int] = None) -> Any:
    if data is None:
        return None
    goal = settings.GOAL_OVERRIDE if goal is None else goal
    if isinstance(data, (list, tuple)):
        return [_override_one(item, goal) for item in data]
    return _override_one(data, goal)
