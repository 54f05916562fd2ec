#!/usr/bin/env python3
"""
Pace Zones Histogram Module

Counts activities per fixed pace bin. Each pace is assigned to exactly one
bin by a first-match scan over ascending ``[lower, upper)`` boundaries. Paces
at or above 15 min/km, or non-positive, are left out of the histogram even
though the normalizer may already have kept them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..const import PACE_ZONE_BINS, PACE_ZONE_MAX_PACE
from ..models import Activity
from .interface import InvalidParameterError


@dataclass
class PaceZone:
    """One histogram bin"""
    label: str
    pace_range: Tuple[float, float]  # (lower inclusive, upper exclusive) in min/km
    count: int = 0

    def contains(self, pace: float) -> bool:
        return self.pace_range[0] <= pace < self.pace_range[1]

    def to_dict(self) -> Dict[str, Any]:
        return {'zone': self.label, 'count': self.count}


class PaceZoneHistogram:
    """Builds pace-zone counts for a set of activities"""

    def __init__(self,
                 bins: Sequence[Tuple[str, float, float]] = PACE_ZONE_BINS,
                 max_pace: float = PACE_ZONE_MAX_PACE):
        lowers = [lower for _, lower, _ in bins]
        if not bins or lowers != sorted(lowers):
            raise InvalidParameterError("Pace zone bins must be non-empty and ascending")
        self.bins = bins
        self.max_pace = max_pace

    def _empty_zones(self) -> List[PaceZone]:
        return [PaceZone(label, (lower, upper)) for label, lower, upper in self.bins]

    def accepts(self, pace: Optional[float]) -> bool:
        return pace is not None and 0 < pace < self.max_pace

    def build(self, activities: Iterable[Activity]) -> List[PaceZone]:
        """
        Count activities per pace zone.

        Args:
            activities: Normalized activities

        Returns:
            One PaceZone per bin, in bin order, with counts filled in
        """
        zones = self._empty_zones()
        for activity in activities:
            pace = activity.pace_min_per_km
            if not self.accepts(pace):
                continue
            for zone in zones:
                if zone.contains(pace):
                    zone.count += 1
                    break
        return zones
