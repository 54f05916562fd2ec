#!/usr/bin/env python3
"""
StakeFlow - Fitness accountability engine
Turns recorded activities into statistics and goal verdicts, and charges penalties for missed goals
"""

# Setup logging first
from .utils import setup_stakeflow_logging
setup_stakeflow_logging()

# Data model
from .models import (
    Activity, ActivityType, Goal, GoalFrequency, GoalStatus, GoalEvaluation, ChargeOutcome,
    AnyActivityType, SpecificActivityType, ANY_ACTIVITY_TYPE, parse_type_filter
)
from .exceptions import (
    StakeflowError, ConfigurationError, GoalValidationError,
    ChargeError, ChargeDeclinedError, ChargeTransientError,
    ActivitySourceError, RateLimitError, AuthExpiredError
)

# Analytics, goals and penalties
from .analytics.normalizer import ActivityNormalizer, normalize_activities
from .goals import GoalEvaluator, validate_goal_request, goal_progress_summary
from .penalties import PenaltyDispatcher, ChargeCapability, ChargeResult, InMemoryChargeLedger, to_cents

# Services and storage
from .storage import InMemoryStorage
from .services import StatisticsService, AccountabilityService, compute_statistics

__version__ = "0.1.0"

__all__ = [
    # Data model
    'Activity', 'ActivityType', 'Goal', 'GoalFrequency', 'GoalStatus', 'GoalEvaluation',
    'ChargeOutcome', 'AnyActivityType', 'SpecificActivityType', 'ANY_ACTIVITY_TYPE',
    'parse_type_filter',

    # Exceptions
    'StakeflowError', 'ConfigurationError', 'GoalValidationError',
    'ChargeError', 'ChargeDeclinedError', 'ChargeTransientError',
    'ActivitySourceError', 'RateLimitError', 'AuthExpiredError',

    # Analytics, goals and penalties
    'ActivityNormalizer', 'normalize_activities',
    'GoalEvaluator', 'validate_goal_request', 'goal_progress_summary',
    'PenaltyDispatcher', 'ChargeCapability', 'ChargeResult', 'InMemoryChargeLedger', 'to_cents',

    # Services and storage
    'InMemoryStorage',
    'StatisticsService', 'AccountabilityService', 'compute_statistics',
]
