#!/usr/bin/env python3
"""
Statistics Service - Builds the statistics dashboard payload

Loads a user's raw activities, normalizes them and runs every aggregation,
trend and prediction over the working set. The payload is complete for any
input: an empty working set yields zeros, empty lists and None figures.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..analytics.aggregation import (
    BreakdownBucket, CalendarDay, Consistency, HeartRateSummary, LifetimeTotals,
    PeriodRollup, PersonalRecords, Streak,
    calendar_heatmap, consistency_score, daily_streak, day_of_week_breakdown,
    heart_rate_summary, hour_of_day_breakdown, lifetime_totals, monthly_rollup,
    personal_records, recent_activities, weekly_rollup, weekly_streak,
)
from ..analytics.normalizer import ActivityNormalizer
from ..analytics.pace_zones import PaceZone, PaceZoneHistogram
from ..analytics.trends import (
    PaceTrend, RacePredictions, heart_rate_pace_correlation, moving_average,
    pace_trend, predict_race_times,
)
from ..analytics.windows import resolve_week_start
from ..config import AnalyticsConfig, get_analytics_config
from ..models import Activity
from ..storage.interface import ActivitySource
from ..utils import get_logger

logger = get_logger(__name__)


@dataclass
class StatisticsPayload:
    """Every figure shown on the statistics dashboard"""
    lifetime: LifetimeTotals = field(default_factory=LifetimeTotals)
    heart_rate: HeartRateSummary = field(default_factory=HeartRateSummary)
    pace_trend: Optional[PaceTrend] = None
    hr_pace_correlation: Optional[float] = None
    predictions: Optional[RacePredictions] = None
    weekly: List[PeriodRollup] = field(default_factory=list)
    weekly_moving_average: List[float] = field(default_factory=list)
    monthly: List[PeriodRollup] = field(default_factory=list)
    consistency: Consistency = field(default_factory=Consistency)
    weekly_streak: Streak = field(default_factory=Streak)
    daily_streak: Streak = field(default_factory=Streak)
    day_of_week: List[BreakdownBucket] = field(default_factory=list)
    hour_of_day: List[BreakdownBucket] = field(default_factory=list)
    pace_zones: List[PaceZone] = field(default_factory=list)
    recent_activities: List[Dict[str, Any]] = field(default_factory=list)
    calendar: List[CalendarDay] = field(default_factory=list)
    personal_records: PersonalRecords = field(default_factory=PersonalRecords)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lifetime': self.lifetime.to_dict(),
            'physiology': self.heart_rate.to_dict(),
            'speed': {'max_speed_kmh': self.lifetime.max_speed_kmh},
            'analytics': {
                'pace_trend': self.pace_trend.to_dict() if self.pace_trend else None,
                'hr_pace_correlation': self.hr_pace_correlation,
                'predictions': self.predictions.to_dict() if self.predictions else None,
            },
            'weekly': [w.to_dict() for w in self.weekly],
            'weekly_moving_average': list(self.weekly_moving_average),
            'monthly': [m.to_dict() for m in self.monthly],
            'consistency': self.consistency.to_dict(),
            'streaks': {
                'weekly': self.weekly_streak.to_dict(),
                'daily': self.daily_streak.to_dict(),
            },
            'day_of_week': [d.to_dict() for d in self.day_of_week],
            'hour_of_day': [h.to_dict() for h in self.hour_of_day],
            'pace_zones': [z.to_dict() for z in self.pace_zones],
            'recent_activities': list(self.recent_activities),
            'calendar': [c.to_dict() for c in self.calendar],
            'personal_records': self.personal_records.to_dict(),
        }


def compute_statistics(raw_activities: Iterable[Activity], now: datetime,
                       config: Optional[AnalyticsConfig] = None) -> StatisticsPayload:
    """
    Build the statistics payload from raw activities.

    Args:
        raw_activities: Activities as loaded, possibly duplicated or implausible
        now: Reference instant for every window, trend and streak
        config: Analytics configuration (global settings when omitted)
    """
    config = get_analytics_config(config)
    activities = ActivityNormalizer(config).normalize(raw_activities)
    if not activities:
        return StatisticsPayload()

    zone = config.zone
    week_start = resolve_week_start(config.display_week_start)
    weekly = weekly_rollup(activities, now, config.weekly_bucket_count, week_start, zone)

    return StatisticsPayload(
        lifetime=lifetime_totals(activities),
        heart_rate=heart_rate_summary(activities),
        pace_trend=pace_trend(activities, now, config.trend_window_months),
        hr_pace_correlation=heart_rate_pace_correlation(activities, now, config.trend_window_months),
        predictions=predict_race_times(activities, config.prediction_min_distance_meters),
        weekly=weekly,
        weekly_moving_average=moving_average([w.distance_km for w in weekly], config.moving_average_window),
        monthly=monthly_rollup(activities, now, config.monthly_bucket_count, zone),
        consistency=consistency_score(activities, now, week_start, zone),
        weekly_streak=weekly_streak(activities, now, week_start, zone),
        daily_streak=daily_streak(activities, now, zone),
        day_of_week=day_of_week_breakdown(activities, zone),
        hour_of_day=hour_of_day_breakdown(activities, zone),
        pace_zones=PaceZoneHistogram().build(activities),
        recent_activities=recent_activities(activities, config.recent_activity_count),
        calendar=calendar_heatmap(activities, now, config.calendar_days, zone),
        personal_records=personal_records(activities),
    )


class StatisticsService:
    """High-level service producing a user's statistics payload"""

    def __init__(self, activity_source: ActivitySource, config: Optional[AnalyticsConfig] = None):
        """
        Initialize statistics service

        Args:
            activity_source: Where the user's activities are loaded from
            config: Analytics configuration
        """
        self.activity_source = activity_source
        self.config = get_analytics_config(config)

    def build(self, user_id: str, now: datetime) -> StatisticsPayload:
        """
        Build the statistics payload for a user.

        Raises:
            ActivitySourceError: if the activities cannot be loaded
        """
        raw = self.activity_source.load_activities(user_id)
        payload = compute_statistics(raw, now, self.config)
        logger.info("Built statistics", user_id=user_id,
                    raw_activities=len(raw), activities=payload.lifetime.activities)
        return payload
