#!/usr/bin/env python3
"""
Activity Normalizer

Turns the raw activity collection loaded from storage into the clean working
set every statistic is computed from:

1. Deduplicate by ``source_id``. A single activity can be joined through
   several goal associations, so the raw collection may repeat it.
2. Drop invalid activities (no distance or no moving time) and GPS stubs
   shorter than the configured minimum distance.
3. Drop activities whose pace falls outside the configured plausible band.
4. Order ascending by start time, ties broken by ``source_id``.

Implausible data is excluded silently; it is never an error.
"""

from typing import Dict, Iterable, List, Optional

from ..config import AnalyticsConfig, get_analytics_config
from ..models import Activity
from ..utils import get_logger

logger = get_logger(__name__)


class ActivityNormalizer:
    """Deduplicates and filters raw activities into a working set"""

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        self.config = get_analytics_config(config)

    @staticmethod
    def dedupe(raw: Iterable[Activity]) -> List[Activity]:
        """Keep one record per source_id; the last one seen wins."""
        by_id: Dict[int, Activity] = {}
        for activity in raw:
            by_id[activity.source_id] = activity
        return list(by_id.values())

    def is_plausible(self, activity: Activity) -> bool:
        """
        Check validity, minimum distance and the pace band.

        The band is exclusive at the fast end and inclusive at the slow end:
        ``min_pace < pace <= max_pace``.
        """
        if not activity.is_valid:
            return False
        if activity.distance_meters <= self.config.min_distance_meters:
            return False
        min_pace, max_pace = self.config.pace_bounds_for(activity.activity_type.value)
        pace = activity.pace_min_per_km
        return min_pace < pace <= max_pace

    @staticmethod
    def sort_key(activity: Activity):
        return (activity.start_timestamp, activity.source_id)

    def normalize(self, raw: Iterable[Activity]) -> List[Activity]:
        """
        Produce the deduplicated, filtered, ordered working set.

        Args:
            raw: Activities as loaded from storage, possibly with duplicates

        Returns:
            Activities sorted by (start_timestamp, source_id)
        """
        unique = self.dedupe(raw)
        kept = [a for a in unique if self.is_plausible(a)]
        kept.sort(key=self.sort_key)

        dropped = len(unique) - len(kept)
        if dropped:
            logger.debug("Excluded implausible activities", excluded=dropped, kept=len(kept))
        return kept


def normalize_activities(raw: Iterable[Activity], config: Optional[AnalyticsConfig] = None) -> List[Activity]:
    """Convenience wrapper around ``ActivityNormalizer.normalize``."""
    return ActivityNormalizer(config).normalize(raw)
