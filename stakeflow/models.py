#!/usr/bin/env python3
"""
Pydantic Data Models for Activities, Goals and Evaluation Results

Activities and goals are immutable once constructed. Optional physiological
fields are explicit ``Optional`` values; aggregations filter on presence and
never coalesce a missing value to 0.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .const import MAX_PENALTY_USD, MAX_TARGET_KM


class ActivityType(str, Enum):
    """Supported activity types"""

    RUN = "Run"
    RIDE = "Ride"
    SWIM = "Swim"
    WALK = "Walk"
    HIKE = "Hike"


class GoalFrequency(str, Enum):
    """How often a goal's period resets"""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


class GoalStatus(str, Enum):
    """Verdict of a goal evaluation"""

    MET = "met"
    MISSED = "missed"


class Activity(BaseModel):
    """One recorded exercise session"""

    model_config = ConfigDict(frozen=True)

    source_id: int = Field(..., description="Provider-assigned activity ID, the dedup key")
    activity_type: ActivityType
    distance_meters: float = Field(..., ge=0)
    moving_time_seconds: float = Field(..., ge=0)
    elevation_gain_meters: Optional[float] = Field(None, ge=0)
    average_speed_mps: float = Field(0.0, ge=0)
    max_speed_mps: float = Field(0.0, ge=0)
    average_heart_rate_bpm: Optional[float] = Field(None, gt=0)
    max_heart_rate_bpm: Optional[float] = Field(None, gt=0)
    calories_kcal: Optional[float] = Field(None, ge=0)
    start_timestamp: datetime

    @field_validator("start_timestamp")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("start_timestamp must be timezone-aware")
        return value

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000

    @property
    def moving_time_minutes(self) -> float:
        return self.moving_time_seconds / 60

    @property
    def is_valid(self) -> bool:
        """Activities without distance or moving time never reach statistics."""
        return self.distance_meters > 0 and self.moving_time_seconds > 0

    @property
    def pace_min_per_km(self) -> Optional[float]:
        """Pace in minutes per kilometer, None when undefined."""
        if not self.is_valid:
            return None
        return self.moving_time_minutes / self.distance_km


class AnyActivityType(BaseModel):
    """Goal filter matching every activity type"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["any"] = "any"

    def matches(self, activity_type: ActivityType) -> bool:
        return True

    def __str__(self) -> str:
        return "any"


class SpecificActivityType(BaseModel):
    """Goal filter matching exactly one activity type"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["specific"] = "specific"
    activity_type: ActivityType

    def matches(self, activity_type: ActivityType) -> bool:
        return activity_type == self.activity_type

    def __str__(self) -> str:
        return self.activity_type.value


ActivityTypeFilter = Annotated[
    Union[AnyActivityType, SpecificActivityType], Field(discriminator="kind")
]

ANY_ACTIVITY_TYPE = AnyActivityType()


def parse_type_filter(value: str) -> Union[AnyActivityType, SpecificActivityType]:
    """
    Build a type filter from its wire representation.

    Args:
        value: "any" or one of the ActivityType values (e.g. "Run")

    Raises:
        GoalValidationError: if the value names no known activity type
    """
    from .exceptions import GoalValidationError

    if value == "any":
        return ANY_ACTIVITY_TYPE
    try:
        return SpecificActivityType(activity_type=ActivityType(value))
    except ValueError:
        allowed = ", ".join([t.value for t in ActivityType] + ["any"])
        raise GoalValidationError(
            f"Invalid activity type. Must be one of: {allowed}", field="type"
        )


class Goal(BaseModel):
    """A standing distance commitment with a financial penalty"""

    model_config = ConfigDict(frozen=True)

    goal_id: str
    type_filter: ActivityTypeFilter = Field(default_factory=AnyActivityType)
    target_km: float = Field(..., gt=0, le=MAX_TARGET_KM)
    penalty_amount: float = Field(..., ge=0, le=MAX_PENALTY_USD, description="Penalty in USD")
    frequency: GoalFrequency = GoalFrequency.WEEKLY
    start_date: date
    is_active: bool = True

    @field_validator("type_filter", mode="before")
    @classmethod
    def _accept_wire_type(cls, value):
        if isinstance(value, str):
            return parse_type_filter(value)
        if isinstance(value, ActivityType):
            return SpecificActivityType(activity_type=value)
        return value

    @field_validator("start_date", mode="before")
    @classmethod
    def _truncate_to_midnight(cls, value):
        if isinstance(value, datetime):
            return value.date()
        return value


class GoalEvaluation(BaseModel):
    """Progress of one goal over its current period"""

    model_config = ConfigDict(frozen=True)

    goal_id: str
    period_start: datetime
    period_end: datetime
    progress_km: float
    target_km: float
    met: bool

    @property
    def status(self) -> GoalStatus:
        return GoalStatus.MET if self.met else GoalStatus.MISSED


class ChargeOutcome(BaseModel):
    """Result of dispatching the penalty for one goal"""

    model_config = ConfigDict(frozen=True)

    goal_id: str
    status: GoalStatus
    charged: bool = False
    amount_cents: Optional[int] = None
    error: Optional[str] = None
    idempotency_key: Optional[str] = None
    already_charged: bool = False
    charge_pending: bool = False  # charge started but unconfirmed at the timeout
