#!/usr/bin/env python3
"""
Aggregation Engine

Lifetime totals, heart-rate aggregates, weekly/monthly rollups, day-of-week
and hour-of-day breakdowns, the calendar heatmap, personal records,
consistency and streaks. All functions are pure: they take the normalized
activity set plus an explicit ``now`` and return plain dataclasses.

Ratios never produce NaN or infinity: empty denominators yield 0 (paces,
averages over buckets) or None (figures that have no meaning without data).
"""

import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..const import DAY_NAMES_SUNDAY_FIRST, MPS_TO_KMH, WEEKLY_STREAK_TOLERANCE_WEEKS
from ..models import Activity
from .helper import pace_min_per_km, round_half_up_int, safe_ratio
from .windows import (
    TimeWindow,
    WeekStart,
    add_days,
    daily_buckets,
    monthly_buckets,
    resolve_zone,
    start_of_day,
    start_of_week,
    weekly_buckets,
    weeks_between,
)

TzArg = Union[tzinfo, str, None]


@dataclass
class LifetimeTotals:
    distance_km: float = 0.0
    time_minutes: float = 0.0
    elevation_meters: float = 0.0
    calories_kcal: float = 0.0
    activities: int = 0
    avg_pace_min_per_km: float = 0.0
    max_speed_kmh: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class HeartRateSummary:
    avg_heart_rate: Optional[int] = None
    max_heart_rate: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PeriodRollup:
    """Summed distance, time and count for one bucket [start, end)"""
    start: datetime
    end: datetime
    distance_km: float
    time_minutes: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start': self.start.date().isoformat(),
            'label': self.start.strftime('%b %y'),
            'distance_km': self.distance_km,
            'time_minutes': self.time_minutes,
            'count': self.count,
        }


@dataclass
class BreakdownBucket:
    """Day-of-week or hour-of-day bucket"""
    key: Union[str, int]
    count: int
    distance_km: float
    avg_pace_min_per_km: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CalendarDay:
    day: date
    distance_km: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.day.isoformat(), 'distance_km': self.distance_km, 'count': self.count}


@dataclass
class RecordEntry:
    source_id: int
    date: datetime
    distance_km: float
    time_minutes: float
    pace_min_per_km: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['date'] = self.date.isoformat()
        return data


@dataclass
class PersonalRecords:
    fastest_pace: Optional[RecordEntry] = None
    longest_distance: Optional[RecordEntry] = None
    longest_duration: Optional[RecordEntry] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fastest_pace': self.fastest_pace.to_dict() if self.fastest_pace else None,
            'longest_distance': self.longest_distance.to_dict() if self.longest_distance else None,
            'longest_duration': self.longest_duration.to_dict() if self.longest_duration else None,
        }


@dataclass
class Consistency:
    score: int = 0
    active_weeks: int = 0
    total_weeks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Streak:
    current: int = 0
    longest: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _sum_distance_km(activities: Sequence[Activity]) -> float:
    return sum(a.distance_meters for a in activities) / 1000


def _sum_time_minutes(activities: Sequence[Activity]) -> float:
    return sum(a.moving_time_seconds for a in activities) / 60


def lifetime_totals(activities: Sequence[Activity]) -> LifetimeTotals:
    """Lifetime sums; average pace is total minutes over total km (0 without distance)."""
    if not activities:
        return LifetimeTotals()

    total_meters = sum(a.distance_meters for a in activities)
    total_seconds = sum(a.moving_time_seconds for a in activities)
    return LifetimeTotals(
        distance_km=total_meters / 1000,
        time_minutes=total_seconds / 60,
        elevation_meters=sum(a.elevation_gain_meters or 0.0 for a in activities),
        calories_kcal=sum(a.calories_kcal or 0.0 for a in activities),
        activities=len(activities),
        avg_pace_min_per_km=pace_min_per_km(total_seconds, total_meters),
        max_speed_kmh=max(a.max_speed_mps for a in activities) * MPS_TO_KMH,
    )


def heart_rate_summary(activities: Sequence[Activity]) -> HeartRateSummary:
    """
    Time-weighted average heart rate and the maximum recorded heart rate.

    Only activities that recorded heart rate take part; the average is
    rounded half-up to an integer.
    """
    with_hr = [a for a in activities if a.average_heart_rate_bpm is not None and a.moving_time_seconds > 0]
    hr_seconds = sum(a.moving_time_seconds for a in with_hr)
    weighted = sum(a.average_heart_rate_bpm * a.moving_time_seconds for a in with_hr)
    average = safe_ratio(weighted, hr_seconds, default=None)

    max_values = [a.max_heart_rate_bpm for a in activities if a.max_heart_rate_bpm is not None]
    return HeartRateSummary(
        avg_heart_rate=round_half_up_int(average) if average is not None else None,
        max_heart_rate=max(max_values) if max_values else None,
    )


def _rollup(activities: Sequence[Activity], windows: List[TimeWindow]) -> List[PeriodRollup]:
    rollups = []
    for window in windows:
        inside = [a for a in activities if window.contains(a.start_timestamp)]
        rollups.append(PeriodRollup(
            start=window.start,
            end=window.end,
            distance_km=_sum_distance_km(inside),
            time_minutes=_sum_time_minutes(inside),
            count=len(inside),
        ))
    return rollups


def weekly_rollup(activities: Sequence[Activity], now: datetime, count: int = 12,
                  week_start: WeekStart = WeekStart.SUNDAY, tz: TzArg = None) -> List[PeriodRollup]:
    """Per-week totals for the ``count`` weeks ending with the current week."""
    return _rollup(activities, weekly_buckets(now, count, week_start, tz))


def monthly_rollup(activities: Sequence[Activity], now: datetime, count: int = 6,
                   tz: TzArg = None) -> List[PeriodRollup]:
    """Per-month totals for the ``count`` calendar months ending with the current month."""
    return _rollup(activities, monthly_buckets(now, count, tz))


def _breakdown(activities: Sequence[Activity], keys: Sequence[Union[str, int]],
               index_of: Callable[[datetime], int], zone: tzinfo) -> List[BreakdownBucket]:
    grouped: Dict[int, List[Activity]] = defaultdict(list)
    for activity in activities:
        grouped[index_of(activity.start_timestamp.astimezone(zone))].append(activity)

    buckets = []
    for index, key in enumerate(keys):
        members = grouped.get(index, [])
        meters = sum(a.distance_meters for a in members)
        seconds = sum(a.moving_time_seconds for a in members)
        buckets.append(BreakdownBucket(
            key=key,
            count=len(members),
            distance_km=meters / 1000,
            avg_pace_min_per_km=pace_min_per_km(seconds, meters),
        ))
    return buckets


def day_of_week_breakdown(activities: Sequence[Activity], tz: TzArg = None) -> List[BreakdownBucket]:
    """Seven local-weekday buckets, Sunday first."""
    return _breakdown(
        activities, DAY_NAMES_SUNDAY_FIRST,
        lambda local: (local.weekday() + 1) % 7,
        resolve_zone(tz),
    )


def hour_of_day_breakdown(activities: Sequence[Activity], tz: TzArg = None) -> List[BreakdownBucket]:
    """Twenty-four local-hour buckets."""
    return _breakdown(activities, list(range(24)), lambda local: local.hour, resolve_zone(tz))


def calendar_heatmap(activities: Sequence[Activity], now: datetime, days: int = 365,
                     tz: TzArg = None) -> List[CalendarDay]:
    """Distance and count for each of the trailing ``days`` local days; empty days report 0."""
    zone = resolve_zone(tz)
    by_day: Dict[date, List[Activity]] = defaultdict(list)
    for activity in activities:
        by_day[activity.start_timestamp.astimezone(zone).date()].append(activity)

    calendar = []
    for window in daily_buckets(now, days, zone):
        members = by_day.get(window.start.date(), [])
        calendar.append(CalendarDay(
            day=window.start.date(),
            distance_km=_sum_distance_km(members),
            count=len(members),
        ))
    return calendar


def _record(activity: Activity) -> RecordEntry:
    return RecordEntry(
        source_id=activity.source_id,
        date=activity.start_timestamp,
        distance_km=activity.distance_km,
        time_minutes=activity.moving_time_minutes,
        pace_min_per_km=activity.pace_min_per_km or 0.0,
    )


def personal_records(activities: Sequence[Activity]) -> PersonalRecords:
    """Fastest pace, longest distance and longest duration; ties go to the earliest activity."""
    valid = [a for a in activities if a.is_valid]
    if not valid:
        return PersonalRecords()

    def earliest(a: Activity):
        return (a.start_timestamp, a.source_id)

    fastest = min(valid, key=lambda a: (a.pace_min_per_km, *earliest(a)))
    longest = min(valid, key=lambda a: (-a.distance_meters, *earliest(a)))
    longest_time = min(valid, key=lambda a: (-a.moving_time_seconds, *earliest(a)))
    return PersonalRecords(
        fastest_pace=_record(fastest),
        longest_distance=_record(longest),
        longest_duration=_record(longest_time),
    )


def active_week_starts(activities: Sequence[Activity], week_start: WeekStart = WeekStart.SUNDAY,
                       tz: TzArg = None) -> List[datetime]:
    """Distinct week starts containing at least one activity, ascending."""
    zone = resolve_zone(tz)
    return sorted({start_of_week(a.start_timestamp, week_start, zone) for a in activities})


def active_days(activities: Sequence[Activity], tz: TzArg = None) -> List[date]:
    """Distinct local calendar days with at least one activity, ascending."""
    zone = resolve_zone(tz)
    return sorted({a.start_timestamp.astimezone(zone).date() for a in activities})


def consistency_score(activities: Sequence[Activity], now: datetime,
                      week_start: WeekStart = WeekStart.SUNDAY, tz: TzArg = None) -> Consistency:
    """
    Percentage of elapsed weeks since the first activity that contain an activity.

    ``total_weeks = ceil((now - first) / 7 days)``. A first activity late in
    its week can put one more active week-start bucket on the calendar than
    elapsed weeks, so the active count is capped at ``total_weeks`` for the
    score, which keeps it within [0, 100].
    """
    if not activities:
        return Consistency()

    first = min(a.start_timestamp for a in activities)
    total_weeks = max(0, math.ceil(weeks_between(first, now)))
    active = len(active_week_starts(activities, week_start, tz))
    if total_weeks <= 0:
        return Consistency(score=0, active_weeks=active, total_weeks=0)

    score = round_half_up_int(min(active, total_weeks) / total_weeks * 100)
    return Consistency(score=score, active_weeks=active, total_weeks=total_weeks)


def _walk_streak(units: Sequence, is_next: Callable[[Any, Any], bool], current_units: Sequence) -> Streak:
    """
    Walk sorted distinct units, extending the run while consecutive.

    The final run counts as current only when the last unit is one of
    ``current_units`` (this period or the one before it).
    """
    if not units:
        return Streak()

    running = 0
    longest = 0
    previous = None
    for unit in units:
        if previous is not None and is_next(previous, unit):
            running += 1
        else:
            running = 1
        longest = max(longest, running)
        previous = unit

    current = running if units[-1] in current_units else 0
    return Streak(current=current, longest=longest)


def weekly_streak(activities: Sequence[Activity], now: datetime,
                  week_start: WeekStart = WeekStart.SUNDAY, tz: TzArg = None) -> Streak:
    """Consecutive active weeks; current if the last active week is this week or last week."""
    zone = resolve_zone(tz)
    weeks = active_week_starts(activities, week_start, zone)
    this_week = start_of_week(now, week_start, zone)
    last_week = add_days(this_week, -7)
    return _walk_streak(
        weeks,
        lambda prev, curr: weeks_between(prev, curr) <= WEEKLY_STREAK_TOLERANCE_WEEKS,
        (this_week, last_week),
    )


def daily_streak(activities: Sequence[Activity], now: datetime, tz: TzArg = None) -> Streak:
    """Consecutive active days; current if the last active day is today or yesterday."""
    zone = resolve_zone(tz)
    days = active_days(activities, zone)
    today = start_of_day(now, zone).date()
    return _walk_streak(
        days,
        lambda prev, curr: (curr - prev).days == 1,
        (today, today - timedelta(days=1)),
    )


def recent_activities(activities: Sequence[Activity], count: int = 10) -> List[Dict[str, Any]]:
    """The ``count`` most recent activities, newest first."""
    newest = sorted(activities, key=lambda a: (a.start_timestamp, a.source_id), reverse=True)[:count]
    return [
        {
            'source_id': a.source_id,
            'type': a.activity_type.value,
            'distance_km': a.distance_km,
            'time_minutes': a.moving_time_minutes,
            'pace_min_per_km': a.pace_min_per_km or 0.0,
            'date': a.start_timestamp.isoformat(),
        }
        for a in newest
    ]
