"""
Configuration management for StakeFlow.

Configuration is loaded from environment variables (and an optional .env file)
with fallbacks to the documented defaults. Every tunable analytics threshold
lives here rather than in the analytics code.
"""

from functools import lru_cache
from typing import Dict, Literal, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .const import (
    DEFAULT_MAX_PACE_MIN_PER_KM,
    DEFAULT_MIN_DISTANCE_METERS,
    DEFAULT_MIN_PACE_MIN_PER_KM,
    PREDICTION_MIN_DISTANCE_METERS,
    STRAVA_API_BASE,
)

load_dotenv()


class AnalyticsConfig(BaseSettings):
    """Activity normalization and statistics configuration."""

    model_config = SettingsConfigDict(env_prefix="STAKEFLOW_", extra="ignore")

    timezone: str = Field(default="UTC", description="IANA zone used for local days, weeks and months")

    # Pace plausibility band in min/km: keep min_pace < pace <= max_pace
    min_pace_min_per_km: float = Field(default=DEFAULT_MIN_PACE_MIN_PER_KM, gt=0)
    max_pace_min_per_km: float = Field(default=DEFAULT_MAX_PACE_MIN_PER_KM, gt=0)
    pace_bounds_overrides: Dict[str, Tuple[float, float]] = Field(
        default_factory=lambda: {"Ride": (0.5, DEFAULT_MAX_PACE_MIN_PER_KM)}
    )
    min_distance_meters: float = Field(default=DEFAULT_MIN_DISTANCE_METERS, ge=0)

    weekly_bucket_count: int = Field(default=12, ge=1)
    monthly_bucket_count: int = Field(default=6, ge=1)
    calendar_days: int = Field(default=365, ge=1)
    recent_activity_count: int = Field(default=10, ge=0)
    trend_window_months: int = Field(default=6, ge=1)
    moving_average_window: int = Field(default=4, ge=1)
    prediction_min_distance_meters: float = Field(default=PREDICTION_MIN_DISTANCE_METERS, gt=0)
    display_week_start: Literal["sunday", "monday"] = Field(default="sunday")

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @model_validator(mode="after")
    def _ordered_pace_bounds(self) -> "AnalyticsConfig":
        bands = [(self.min_pace_min_per_km, self.max_pace_min_per_km), *self.pace_bounds_overrides.values()]
        for low, high in bands:
            if low <= 0 or low >= high:
                raise ValueError(f"Invalid pace band ({low}, {high}): expected 0 < min < max")
        return self

    @property
    def zone(self) -> ZoneInfo:
        """Get the configured timezone as a ZoneInfo object."""
        return ZoneInfo(self.timezone)

    def pace_bounds_for(self, activity_type: str) -> Tuple[float, float]:
        """Get the (min, max) pace band for an activity type."""
        return self.pace_bounds_overrides.get(
            activity_type, (self.min_pace_min_per_km, self.max_pace_min_per_km)
        )


class PenaltyConfig(BaseSettings):
    """Penalty charging configuration."""

    model_config = SettingsConfigDict(env_prefix="STAKEFLOW_PENALTY_", extra="ignore")

    currency: str = Field(default="usd")
    max_attempts: int = Field(default=3, ge=1)
    min_retry_wait: float = Field(default=1.0, ge=0)
    max_retry_wait: float = Field(default=10.0, ge=0)
    charge_timeout_seconds: float = Field(default=30.0, gt=0)
    max_concurrency: int = Field(default=4, ge=1)


class StravaConfig(BaseSettings):
    """Activity provider connection configuration."""

    model_config = SettingsConfigDict(env_prefix="STRAVA_", extra="ignore")

    api_base: str = Field(default=STRAVA_API_BASE)
    request_timeout: float = Field(default=15.0, gt=0)
    per_page: int = Field(default=30, ge=1, le=200)
    max_attempts: int = Field(default=3, ge=1)
    webhook_verify_token: str = Field(default="stakeflow-verify")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="STAKEFLOW_LOG_", extra="ignore")

    level: str = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")


class Settings(BaseSettings):
    """Main settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STAKEFLOW_",
        extra="ignore",
    )

    environment: str = Field(default="development")

    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    penalty: PenaltyConfig = Field(default_factory=PenaltyConfig)
    strava: StravaConfig = Field(default_factory=StravaConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get complete settings (cached)."""
    return Settings()


def get_analytics_config(override: Optional[AnalyticsConfig] = None) -> AnalyticsConfig:
    """Get the analytics configuration, preferring an explicit override."""
    return override or get_settings().analytics


def get_penalty_config(override: Optional[PenaltyConfig] = None) -> PenaltyConfig:
    """Get the penalty configuration, preferring an explicit override."""
    return override or get_settings().penalty


def get_strava_config(override: Optional[StravaConfig] = None) -> StravaConfig:
    """Get the provider configuration, preferring an explicit override."""
    return override or get_settings().strava
