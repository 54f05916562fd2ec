#!/usr/bin/env python3
"""
Trend & Prediction Module

Pace trend (ordinary least squares of pace on time), heart-rate/pace
correlation, Riegel race-time predictions and simple moving averages.

Insufficient data never raises: every function returns None (or an empty
list for moving averages) when there is nothing meaningful to report.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..const import PREDICTION_MIN_DISTANCE_METERS, RACE_DISTANCES_KM, RIEGEL_EXPONENT
from ..models import Activity
from .interface import InvalidParameterError
from .windows import add_months

MS_PER_WEEK = 7 * 24 * 60 * 60 * 1000


@dataclass
class PaceTrend:
    """Linear fit of pace (min/km) against time (epoch milliseconds)"""
    slope: float
    intercept: float
    r_squared: float
    points: int

    @property
    def slope_per_week(self) -> float:
        """Pace change in min/km per week"""
        return self.slope * MS_PER_WEEK

    @property
    def description(self) -> str:
        return "Slowing down" if self.slope > 0 else "Getting faster"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['slope_per_week'] = self.slope_per_week
        data['description'] = self.description
        return data


@dataclass
class RacePredictions:
    """Predicted finishing times in minutes"""
    p5k: float
    p10k: float
    p_half: float
    p_marathon: float
    based_on_source_id: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def trend_window(activities: Sequence[Activity], now: datetime, months: int = 6) -> List[Activity]:
    """Activities starting strictly after ``now`` minus ``months`` calendar months."""
    cutoff = add_months(now, -months)
    return [a for a in activities if a.start_timestamp > cutoff]


def _epoch_ms(instant: datetime) -> float:
    return instant.timestamp() * 1000


def linear_regression(x: Sequence[float], y: Sequence[float]) -> Optional[Dict[str, float]]:
    """
    Ordinary least squares fit ``y = slope * x + intercept``.

    The fit is computed on mean-centred x so that epoch-millisecond inputs do
    not lose precision.

    Returns:
        Dict with slope, intercept and r_squared, or None when fewer than two
        points are given or x has no variance
    """
    if len(x) != len(y) or len(x) < 2:
        return None

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if np.ptp(xs) == 0:
        return None

    x_mean = xs.mean()
    xc = xs - x_mean
    slope, centred_intercept = np.polyfit(xc, ys, 1)
    intercept = centred_intercept - slope * x_mean

    # A perfectly flat series is perfectly explained by a flat line
    r_squared = 1.0 if np.ptp(ys) == 0 else np.corrcoef(xc, ys)[0, 1] ** 2

    return {'slope': float(slope), 'intercept': float(intercept), 'r_squared': float(r_squared)}


def pace_trend(activities: Sequence[Activity], now: datetime, months: int = 6) -> Optional[PaceTrend]:
    """
    Regress pace on start time over the trailing ``months``.

    A positive slope means pace values are increasing, i.e. slowing down.
    """
    recent = [a for a in trend_window(activities, now, months) if a.is_valid]
    fit = linear_regression(
        [_epoch_ms(a.start_timestamp) for a in recent],
        [a.pace_min_per_km for a in recent],
    )
    if fit is None:
        return None
    return PaceTrend(points=len(recent), **fit)


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """Sample Pearson correlation, None for fewer than two pairs, unequal lengths or zero variance."""
    if len(x) != len(y) or len(x) < 2:
        return None

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return None
    return float(np.clip(np.corrcoef(xs, ys)[0, 1], -1.0, 1.0))


def heart_rate_pace_correlation(activities: Sequence[Activity], now: datetime,
                                months: int = 6) -> Optional[float]:
    """Correlation of average heart rate with pace over the trailing ``months``."""
    pairs = [
        (a.average_heart_rate_bpm, a.pace_min_per_km)
        for a in trend_window(activities, now, months)
        if a.average_heart_rate_bpm is not None and a.is_valid
    ]
    return pearson_correlation([hr for hr, _ in pairs], [pace for _, pace in pairs])


def riegel_time(distance_km: float, time_minutes: float, target_km: float,
                exponent: float = RIEGEL_EXPONENT) -> float:
    """Riegel's formula: T2 = T1 * (D2 / D1) ** 1.06"""
    if distance_km <= 0:
        raise InvalidParameterError(f"Reference distance must be positive, got {distance_km}")
    return time_minutes * (target_km / distance_km) ** exponent


def best_effort(activities: Sequence[Activity],
                min_distance_meters: float = PREDICTION_MIN_DISTANCE_METERS) -> Optional[Activity]:
    """
    Fastest activity at or above the minimum distance.

    Shorter efforts are excluded even when faster, since they extrapolate to
    unrealistic long-distance times. Ties go to the earliest activity.
    """
    candidates = [a for a in activities if a.is_valid and a.distance_meters >= min_distance_meters]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda a: (a.moving_time_seconds / a.distance_meters, a.start_timestamp, a.source_id),
    )


def predict_race_times(activities: Sequence[Activity],
                       min_distance_meters: float = PREDICTION_MIN_DISTANCE_METERS) -> Optional[RacePredictions]:
    """Predicted 5K, 10K, half-marathon and marathon times from the best effort."""
    effort = best_effort(activities, min_distance_meters)
    if effort is None:
        return None

    times = {
        name: riegel_time(effort.distance_km, effort.moving_time_minutes, target_km)
        for name, target_km in RACE_DISTANCES_KM.items()
    }
    return RacePredictions(based_on_source_id=effort.source_id, **times)


def moving_average(values: Sequence[float], window: int) -> List[float]:
    """Simple moving average; empty when there are fewer values than the window."""
    if window < 1:
        raise InvalidParameterError(f"Moving average window must be at least 1, got {window}")
    if len(values) < window:
        return []
    kernel = np.ones(window) / window
    return [float(v) for v in np.convolve(np.asarray(values, dtype=float), kernel, mode='valid')]
