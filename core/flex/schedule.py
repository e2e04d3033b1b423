"""
Weekly schedule, timezone boundaries and polling cadence.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.flex.models import (
    DEFAULT_TIMEZONE,
    STRATEGY_SHORT_BURST,
    DaySchedule,
    as_utc,
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Seconds between searches for each strategy.
SHORT_BURST_REFRESH_SECONDS = 15
STEADY_REFRESH_SECONDS = 60


def default_schedule() -> Dict[str, Dict]:
    """Every day enabled, all day."""
    return {day: {"enabled": True, "start_time": "00:00", "end_time": "23:59"} for day in WEEKDAYS}


def get_zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name}") from exc


def poll_interval(strategy: str) -> int:
    """Strategy only changes how often the platform is polled."""
    if strategy == STRATEGY_SHORT_BURST:
        return SHORT_BURST_REFRESH_SECONDS
    return STEADY_REFRESH_SECONDS


def start_of_day(now: datetime, tz_name: str | None) -> datetime:
    """Local midnight of ``now``'s date in ``tz_name``, returned in UTC."""
    local = as_utc(now).astimezone(get_zone(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return as_utc(midnight)


def start_of_week(now: datetime, tz_name: str | None) -> datetime:
    """Most recent Sunday 00:00 (inclusive) in ``tz_name``, returned in UTC."""
    local = as_utc(now).astimezone(get_zone(tz_name))
    # weekday(): Monday=0 .. Sunday=6
    days_back = (local.weekday() + 1) % 7
    sunday = (local - timedelta(days=days_back)).replace(hour=0, minute=0, second=0, microsecond=0)
    return as_utc(sunday)


def _minute_of_day(hh_mm: str) -> int:
    hours, minutes = hh_mm.split(":")
    return int(hours) * 60 + int(minutes)


def _day_entry(schedule: Mapping[str, DaySchedule], day: str) -> DaySchedule | None:
    entry = schedule.get(day)
    if entry is None:
        return None
    if isinstance(entry, DaySchedule):
        return entry
    return DaySchedule.model_validate(entry)


def is_within_schedule(
    schedule: Mapping[str, DaySchedule],
    tz_name: str | None,
    now: datetime,
) -> bool:
    """
    True when ``now`` falls inside an enabled window of the weekly schedule.

    Windows are inclusive to the minute. A window whose end is before its
    start runs past midnight into the following day. An empty schedule
    means no restriction.
    """
    if not schedule:
        return True

    local = as_utc(now).astimezone(get_zone(tz_name))
    minute = local.hour * 60 + local.minute
    today = WEEKDAYS[local.weekday()]
    yesterday = WEEKDAYS[(local.weekday() - 1) % 7]

    entry = _day_entry(schedule, today)
    if entry and entry.enabled:
        start, end = _minute_of_day(entry.start_time), _minute_of_day(entry.end_time)
        if start <= end and start <= minute <= end:
            return True
        if start > end and minute >= start:
            return True

    previous = _day_entry(schedule, yesterday)
    if previous and previous.enabled:
        start, end = _minute_of_day(previous.start_time), _minute_of_day(previous.end_time)
        if start > end and minute <= end:
            return True

    return False


__all__ = [
    "WEEKDAYS",
    "SHORT_BURST_REFRESH_SECONDS",
    "STEADY_REFRESH_SECONDS",
    "default_schedule",
    "get_zone",
    "poll_interval",
    "start_of_day",
    "start_of_week",
    "is_within_schedule",
]
