"""
Shared constants for StakeFlow.
"""

# Goal creation limits
MIN_TARGET_KM = 0.0  # exclusive
MAX_TARGET_KM = 1000.0
MIN_PENALTY_USD = 0.0
MAX_PENALTY_USD = 500.0

# Provider energy in kilojoules -> kcal
KILOJOULES_TO_KCAL = 0.239

MPS_TO_KMH = 3.6

# Activity plausibility defaults (min/km)
DEFAULT_MIN_PACE_MIN_PER_KM = 2.0
DEFAULT_MAX_PACE_MIN_PER_KM = 60.0
DEFAULT_MIN_DISTANCE_METERS = 100.0

# Pace zone histogram: (label, lower inclusive, upper exclusive) in min/km
PACE_ZONE_BINS = (
    ("<4:00", 0.0, 4.0),
    ("4:00-5:00", 4.0, 5.0),
    ("5:00-6:00", 5.0, 6.0),
    ("6:00-7:00", 6.0, 7.0),
    ("7:00-8:00", 7.0, 8.0),
    (">8:00", 8.0, 99.0),
)
PACE_ZONE_MAX_PACE = 15.0

# Riegel race prediction
RIEGEL_EXPONENT = 1.06
PREDICTION_MIN_DISTANCE_METERS = 4000.0
RACE_DISTANCES_KM = {
    "p5k": 5.0,
    "p10k": 10.0,
    "p_half": 21.1,
    "p_marathon": 42.2,
}

# Weekly streaks tolerate DST shifts between consecutive week starts
WEEKLY_STREAK_TOLERANCE_WEEKS = 1.1

DAY_NAMES_SUNDAY_FIRST = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

NO_PAYMENT_METHOD_ERROR = "no payment method"

STRAVA_API_BASE = "https://www.strava.com/api/v3"
