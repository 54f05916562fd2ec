"""
Pytest configuration and fixtures for StakeFlow tests.

All tests run against a fixed reference instant and an explicit UTC analytics
configuration so results never depend on the wall clock or the environment.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

from stakeflow.config import AnalyticsConfig, PenaltyConfig, StravaConfig
from stakeflow.models import Activity, ActivityType, Goal, GoalFrequency

# Wednesday; the Monday-start week began 2024-06-10, the Sunday-start week 2024-06-09
NOW = datetime(2024, 6, 12, 15, 0, tzinfo=timezone.utc)


def make_activity(source_id: int = 1,
                  distance: float = 5000.0,
                  moving_time: float = 1500.0,
                  start: datetime = None,
                  activity_type: ActivityType = ActivityType.RUN,
                  **kwargs) -> Activity:
    """Build an activity; 5 km in 25 minutes (5:00 min/km) yesterday by default."""
    return Activity(
        source_id=source_id,
        activity_type=activity_type,
        distance_meters=distance,
        moving_time_seconds=moving_time,
        start_timestamp=start or NOW - timedelta(days=1),
        **kwargs,
    )


def make_goal(goal_id: str = "goal-1",
              target_km: float = 50.0,
              penalty: float = 10.0,
              frequency: GoalFrequency = GoalFrequency.WEEKLY,
              type_filter="any",
              start_date: date = date(2024, 1, 1),
              **kwargs) -> Goal:
    return Goal(
        goal_id=goal_id,
        type_filter=type_filter,
        target_km=target_km,
        penalty_amount=penalty,
        frequency=frequency,
        start_date=start_date,
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def analytics_config():
    """Explicit UTC configuration with the documented defaults."""
    return AnalyticsConfig(timezone="UTC")


@pytest.fixture
def penalty_config():
    """Penalty configuration without retry waits."""
    return PenaltyConfig(max_attempts=3, min_retry_wait=0, max_retry_wait=0,
                         charge_timeout_seconds=5, max_concurrency=4)


@pytest.fixture
def strava_config():
    """Provider configuration with a single attempt per request."""
    return StravaConfig(api_base="https://strava.test/api/v3", max_attempts=1,
                        per_page=30, webhook_verify_token="test-token")


@pytest.fixture
def successful_capability():
    """Charge capability mock that always succeeds."""
    from stakeflow.penalties import ChargeResult

    capability = Mock()
    capability.charge_penalty.return_value = ChargeResult(success=True, reference="ch_test")
    return capability
