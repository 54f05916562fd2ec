"""
Human-readable formatting for durations, paces and distances.
"""

from .helper import round_half_up_int

NO_PACE = "--:--"


def format_duration(minutes: float) -> str:
    """
    Format a duration given in minutes.

    Examples:
        62.05 -> "1h 2m 3s"
        2.05 -> "2m 3s"
    """
    total_seconds = max(0, round_half_up_int(minutes * 60))
    hours, remainder = divmod(total_seconds, 3600)
    mins, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {mins}m {secs}s"
    return f"{mins}m {secs}s"


def format_pace(min_per_km: float) -> str:
    """Format a pace in min/km as M:SS, or "--:--" when there is no pace."""
    if min_per_km is None or min_per_km <= 0:
        return NO_PACE
    minutes, seconds = divmod(round_half_up_int(min_per_km * 60), 60)
    return f"{minutes}:{seconds:02d}"


def format_speed_as_pace(speed_mps: float) -> str:
    """Format a speed in m/s as a min/km pace."""
    if speed_mps is None or speed_mps <= 0:
        return NO_PACE
    return format_pace(1000 / speed_mps / 60)


def format_distance(meters: float) -> str:
    """Kilometres with two decimals under 10 km, one decimal otherwise."""
    km = meters / 1000
    return f"{km:.1f}" if km >= 10 else f"{km:.2f}"
