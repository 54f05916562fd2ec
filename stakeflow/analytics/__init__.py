#!/usr/bin/env python3
"""
Analytics
"""

from .interface import AnalyticsError, InvalidParameterError

from .normalizer import ActivityNormalizer, normalize_activities

from .windows import (
    WeekStart, TimeWindow,
    start_of_day, start_of_week, start_of_display_week, start_of_month,
    add_months, add_days, weekly_buckets, monthly_buckets, daily_buckets,
    is_within_period, period_for, weeks_between
)

from .aggregation import (
    LifetimeTotals, HeartRateSummary, PeriodRollup, BreakdownBucket,
    CalendarDay, RecordEntry, PersonalRecords, Consistency, Streak,
    lifetime_totals, heart_rate_summary, weekly_rollup, monthly_rollup,
    day_of_week_breakdown, hour_of_day_breakdown, calendar_heatmap,
    personal_records, consistency_score, weekly_streak, daily_streak,
    recent_activities
)

from .pace_zones import PaceZone, PaceZoneHistogram

from .trends import (
    PaceTrend, RacePredictions,
    pace_trend, heart_rate_pace_correlation, pearson_correlation,
    linear_regression, riegel_time, best_effort, predict_race_times,
    moving_average
)

from .formatting import format_duration, format_pace, format_speed_as_pace, format_distance

__all__ = [
    # Exceptions
    'AnalyticsError', 'InvalidParameterError',

    # Normalization
    'ActivityNormalizer', 'normalize_activities',

    # Windows
    'WeekStart', 'TimeWindow',
    'start_of_day', 'start_of_week', 'start_of_display_week', 'start_of_month',
    'add_months', 'add_days', 'weekly_buckets', 'monthly_buckets', 'daily_buckets',
    'is_within_period', 'period_for', 'weeks_between',

    # Aggregation
    'LifetimeTotals', 'HeartRateSummary', 'PeriodRollup', 'BreakdownBucket',
    'CalendarDay', 'RecordEntry', 'PersonalRecords', 'Consistency', 'Streak',
    'lifetime_totals', 'heart_rate_summary', 'weekly_rollup', 'monthly_rollup',
    'day_of_week_breakdown', 'hour_of_day_breakdown', 'calendar_heatmap',
    'personal_records', 'consistency_score', 'weekly_streak', 'daily_streak',
    'recent_activities',

    # Pace zones
    'PaceZone', 'PaceZoneHistogram',

    # Trends and predictions
    'PaceTrend', 'RacePredictions',
    'pace_trend', 'heart_rate_pace_correlation', 'pearson_correlation',
    'linear_regression', 'riegel_time', 'best_effort', 'predict_race_times',
    'moving_average',

    # Formatting
    'format_duration', 'format_pace', 'format_speed_as_pace', 'format_distance',
]
