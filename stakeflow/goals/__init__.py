"""
Goal evaluation and goal request validation.
"""

from .evaluator import GoalEvaluator, GoalProgressSummary, goal_progress_summary
from .validation import (
    validate_goal_request, validate_target, validate_penalty, validate_frequency,
    VALID_TYPE_NAMES
)

__all__ = [
    'GoalEvaluator', 'GoalProgressSummary', 'goal_progress_summary',
    'validate_goal_request', 'validate_target', 'validate_penalty', 'validate_frequency',
    'VALID_TYPE_NAMES',
]
