"""
Derived statistics over persisted change rows plus the live snapshot.

Every function is pure: rows, the live snapshot and `now` come in as
arguments. Rows are expected ordered by timestamp ascending.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from eci_tracker.db.schemas import HistoryRow, Snapshot, StatsOut

SEC_WINDOW = timedelta(seconds=30)
MIN_WINDOW = timedelta(minutes=5)
HOUR_WINDOW = timedelta(hours=1)
DAY_WINDOW = timedelta(hours=24)

GOAL_REACHED = "Goal reached!"
NO_RECENT_ACTIVITY = "No recent activity"
NO_DATA = "No data"


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _rows_within(
    rows: Sequence[HistoryRow], window: timedelta, now: datetime
) -> list[HistoryRow]:
    start = now - window
    return [row for row in rows if start <= _utc(row.timestamp) <= now]


def sliding_window_rate(
    rows: Sequence[HistoryRow], window: timedelta, now: datetime
) -> float:
    """
    New signatures per second over [now - window, now].

    The divisor is the span actually covered: the lesser of the window and the
    age of the earliest row inside it. Negative corrections add nothing to the
    numerator but still define the span.
    """
    in_window = _rows_within(rows, window, now)
    if not in_window:
        return 0.0
    total = sum(max(0, row.change_amount) for row in in_window)
    if total <= 0:
        return 0.0
    earliest = min(_utc(row.timestamp) for row in in_window)
    span = min(window, now - earliest).total_seconds()
    if span <= 0:
        return 0.0
    return total / span


def total_today(rows: Sequence[HistoryRow], now: datetime) -> int:
    return sum(max(0, row.change_amount) for row in _rows_within(rows, DAY_WINDOW, now))


def peak_hour(rows: Sequence[HistoryRow], now: datetime, tz: ZoneInfo) -> int:
    """Hour of day (in tz) with the most new signatures over the last 24h."""
    buckets: dict[int, int] = {}
    for row in _rows_within(rows, DAY_WINDOW, now):
        if row.change_amount > 0:
            hour = _utc(row.timestamp).astimezone(tz).hour
            buckets[hour] = buckets.get(hour, 0) + row.change_amount
    best_hour, best_count = 0, 0
    for hour in sorted(buckets):
        if buckets[hour] > best_count:
            best_hour, best_count = hour, buckets[hour]
    return best_hour


def activity_level(sec_rate: float, min_rate: float, hourly_rate: float) -> str:
    if sec_rate > 0.1:
        return "High"
    if min_rate > 1:
        return "Medium"
    if hourly_rate > 10:
        return "Low"
    return "Minimal"


def _fmt(value: float, unit: str) -> str:
    return f"{int(_round_half_up(value))} {unit}"


def time_to_goal(
    remaining: int,
    sec_rate: float,
    min_rate: float,
    hourly_rate: float,
    daily_rate: float,
) -> str:
    """
    Estimate from the fastest reliable rate. min_rate is per minute,
    hourly_rate per hour, daily_rate per day.
    """
    if remaining <= 0:
        return GOAL_REACHED
    if sec_rate > 0.1:
        seconds = remaining / sec_rate
        if seconds < 60:
            return _fmt(seconds, "seconds")
        if seconds < 3600:
            return _fmt(seconds / 60, "minutes")
        return _fmt(seconds / 3600, "hours")
    if min_rate > 0.1:
        minutes = remaining / min_rate
        if minutes < 60:
            return _fmt(minutes, "minutes")
        if minutes < 1440:
            return _fmt(minutes / 60, "hours")
        return _fmt(minutes / 1440, "days")
    if hourly_rate > 0.1:
        hours = remaining / hourly_rate
        if hours < 24:
            return _fmt(hours, "hours")
        return _fmt(hours / 24, "days")
    if daily_rate > 0:
        return _fmt(remaining / daily_rate, "days")
    return NO_RECENT_ACTIVITY


def resolve_current_signatures(
    rows: Sequence[HistoryRow], live: Snapshot | None
) -> int:
    """Larger of the last persisted count and the live count."""
    persisted = rows[-1].signature_count if rows else 0
    if live is None:
        return persisted
    return max(persisted, live.signature_count)


def compute_stats(
    rows: Sequence[HistoryRow],
    live: Snapshot | None,
    goal: int,
    now: datetime,
    tz: ZoneInfo,
) -> StatsOut:
    if not rows:
        return StatsOut(
            timeToGoal=NO_DATA,
            activityLevel="None",
            currentSignatures=live.signature_count if live is not None else 0,
            goal=goal,
        )

    sec_rate = sliding_window_rate(rows, SEC_WINDOW, now)
    min_rate = sliding_window_rate(rows, MIN_WINDOW, now) * 60
    hourly_rate = sliding_window_rate(rows, HOUR_WINDOW, now) * 3600
    daily_rate = sliding_window_rate(rows, DAY_WINDOW, now) * 86400
    current = resolve_current_signatures(rows, live)

    return StatsOut(
        secRate=_round_half_up(sec_rate, 2),
        minRate=_round_half_up(min_rate, 1),
        hourlyRate=int(_round_half_up(hourly_rate)),
        dailyRate=int(_round_half_up(daily_rate)),
        peakHour=peak_hour(rows, now, tz),
        totalToday=total_today(rows, now),
        timeToGoal=time_to_goal(goal - current, sec_rate, min_rate, hourly_rate, daily_rate),
        activityLevel=activity_level(sec_rate, min_rate, hourly_rate),
        currentSignatures=current,
        goal=goal,
    )
