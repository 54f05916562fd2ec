#!/usr/bin/env python3
"""
Temporal Window Calculator

Pure period-boundary arithmetic. Every function takes the reference instant
explicitly and never reads a clock. Local days, weeks and months are computed
in an explicit timezone (the configured one when ``tz`` is omitted).

Week-start convention: Monday is the canonical week start and is what goal
periods use. The statistics dashboard displays Sunday-start weeks; that
convention is only available through ``start_of_display_week`` or by passing
``WeekStart.SUNDAY`` explicitly.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, time, timedelta, tzinfo
from enum import Enum
from typing import List, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import ConfigurationError
from ..models import GoalFrequency
from .interface import InvalidParameterError

WEEK = timedelta(days=7)


class WeekStart(Enum):
    """First day of a week, as a ``datetime.weekday()`` number"""

    MONDAY = 0
    SUNDAY = 6

    @classmethod
    def from_name(cls, name: str) -> "WeekStart":
        return cls[name.upper()]


@dataclass(frozen=True)
class TimeWindow:
    """Half-open time window [start, end)"""

    start: datetime
    end: datetime

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end


def resolve_zone(tz: Union[tzinfo, str, None] = None) -> tzinfo:
    """
    Resolve a timezone argument.

    Args:
        tz: tzinfo instance, IANA name, or None for the configured zone
    """
    if tz is None:
        from ..config import get_analytics_config
        return get_analytics_config().zone
    if isinstance(tz, str):
        try:
            return ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown timezone: {tz}") from exc
    return tz


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise InvalidParameterError("Window calculations require timezone-aware datetimes")


def local_midnight(day, tz: tzinfo) -> datetime:
    """Midnight at the start of a calendar date in ``tz``."""
    return datetime.combine(day, time.min, tzinfo=tz)


def start_of_day(instant: datetime, tz: Union[tzinfo, str, None] = None) -> datetime:
    """Local midnight on or before ``instant``."""
    _require_aware(instant)
    zone = resolve_zone(tz)
    return local_midnight(instant.astimezone(zone).date(), zone)


def start_of_week(instant: datetime,
                  week_start: WeekStart = WeekStart.MONDAY,
                  tz: Union[tzinfo, str, None] = None) -> datetime:
    """
    Midnight of the configured week-start day on or before ``instant``.

    Args:
        instant: Timezone-aware reference instant
        week_start: First day of the week (Monday by default)
        tz: Timezone defining local days
    """
    _require_aware(instant)
    zone = resolve_zone(tz)
    local_date = instant.astimezone(zone).date()
    offset = (local_date.weekday() - week_start.value) % 7
    return local_midnight(local_date - timedelta(days=offset), zone)


def start_of_display_week(instant: datetime, tz: Union[tzinfo, str, None] = None) -> datetime:
    """Sunday-start week used by the statistics dashboard."""
    return start_of_week(instant, WeekStart.SUNDAY, tz)


def start_of_month(instant: datetime, tz: Union[tzinfo, str, None] = None) -> datetime:
    """Midnight on the 1st of ``instant``'s local month."""
    _require_aware(instant)
    zone = resolve_zone(tz)
    return local_midnight(instant.astimezone(zone).date().replace(day=1), zone)


def add_months(instant: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    index = instant.year * 12 + (instant.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(instant.day, calendar.monthrange(year, month)[1])
    return instant.replace(year=year, month=month, day=day)


def add_days(midnight: datetime, days: int) -> datetime:
    """Shift a local midnight by calendar days, staying on local midnight across DST."""
    return local_midnight(midnight.date() + timedelta(days=days), midnight.tzinfo)


def weekly_buckets(now: datetime,
                   count: int,
                   week_start: WeekStart = WeekStart.MONDAY,
                   tz: Union[tzinfo, str, None] = None) -> List[TimeWindow]:
    """
    Contiguous week windows ending with the current week, oldest first.

    Args:
        now: Reference instant
        count: Number of weeks (>= 1)
        week_start: First day of the week
        tz: Timezone defining local days
    """
    if count < 1:
        raise InvalidParameterError(f"Bucket count must be at least 1, got {count}")
    current = start_of_week(now, week_start, tz)
    starts = [add_days(current, -7 * i) for i in range(count - 1, -1, -1)]
    return [TimeWindow(start, add_days(start, 7)) for start in starts]


def monthly_buckets(now: datetime, count: int, tz: Union[tzinfo, str, None] = None) -> List[TimeWindow]:
    """Contiguous calendar-month windows ending with the current month, oldest first."""
    if count < 1:
        raise InvalidParameterError(f"Bucket count must be at least 1, got {count}")
    current = start_of_month(now, tz)
    starts = [add_months(current, -i) for i in range(count - 1, -1, -1)]
    return [TimeWindow(start, add_months(start, 1)) for start in starts]


def daily_buckets(now: datetime, count: int, tz: Union[tzinfo, str, None] = None) -> List[TimeWindow]:
    """Contiguous local-day windows ending with today, oldest first."""
    if count < 1:
        raise InvalidParameterError(f"Bucket count must be at least 1, got {count}")
    today = start_of_day(now, tz)
    starts = [add_days(today, -i) for i in range(count - 1, -1, -1)]
    return [TimeWindow(start, add_days(start, 1)) for start in starts]


def is_within_period(timestamp: datetime, start: datetime, end: datetime) -> bool:
    """Inclusive range test: start <= timestamp <= end."""
    return start <= timestamp <= end


def period_for(frequency: GoalFrequency, now: datetime, tz: Union[tzinfo, str, None] = None) -> TimeWindow:
    """
    Current evaluation period of a goal.

    Weekly periods start on Monday at local midnight, monthly periods on the
    1st of the month.
    """
    if frequency == GoalFrequency.MONTHLY:
        start = start_of_month(now, tz)
        return TimeWindow(start, add_months(start, 1))
    start = start_of_week(now, WeekStart.MONDAY, tz)
    return TimeWindow(start, add_days(start, 7))


def weeks_between(earlier: datetime, later: datetime) -> float:
    """Elapsed time between two instants, in weeks."""
    return (later - earlier) / WEEK


def resolve_week_start(value: Union[WeekStart, str, None] = None) -> WeekStart:
    """Resolve a week start argument, defaulting to the configured display convention."""
    if isinstance(value, WeekStart):
        return value
    if value is None:
        from ..config import get_analytics_config
        value = get_analytics_config().display_week_start
    return WeekStart.from_name(value)
