"""
Custom exception classes for StakeFlow.

This module defines the exception hierarchy used throughout StakeFlow. Analytics
never raise for insufficient data (they return None); these exceptions cover
precondition violations and failures of external collaborators.
"""

from typing import Optional, Any, Dict


class StakeflowError(Exception):
    """
    Base exception for all StakeFlow errors.

    All custom exceptions in this package should inherit from this class.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(StakeflowError):
    """
    Raised when there are configuration-related errors.

    Examples:
    - Unknown timezone name
    - Pace bounds where the lower bound is not below the upper bound
    """
    pass


class GoalValidationError(StakeflowError):
    """
    Raised when goal parameters violate the goal creation contract.

    The message is human-readable and safe to show to the user.
    """

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class ChargeError(StakeflowError):
    """
    Raised by charge capabilities when a penalty charge fails.

    The message must not contain payment details; it ends up in the
    per-goal charge outcome.
    """
    pass


class ChargeDeclinedError(ChargeError):
    """
    Raised when the payment provider declines the charge.

    Examples:
    - Card declined
    - Insufficient funds
    - Authentication required for off-session payment
    """
    pass


class ChargeTransientError(ChargeError):
    """
    Raised when the payment provider could not be reached or timed out.

    These are retried within the configured retry budget.
    """
    pass


class ActivitySourceError(StakeflowError):
    """
    Raised when activities or goals cannot be loaded from their source.

    Carries a ``retryable`` flag so the scheduler can tell "try again later"
    apart from "needs user action". The core only interprets it as
    "data unavailable this cycle".
    """

    def __init__(self, message: str, retryable: bool = True, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.retryable = retryable


class RateLimitError(ActivitySourceError):
    """Raised when the activity provider rate-limits the request (HTTP 429)."""

    def __init__(self, message: str, retry_after: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, retryable=True, details=details)
        self.retry_after = retry_after


class AuthExpiredError(ActivitySourceError):
    """Raised when the provider rejects the bearer token (HTTP 401)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, retryable=True, details=details)


# Convenience functions for creating common exceptions

def configuration_error(message: str, **details) -> ConfigurationError:
    """Create a configuration error with details."""
    return ConfigurationError(message, details)


def goal_validation_error(message: str, field: Optional[str] = None, **details) -> GoalValidationError:
    """Create a goal validation error with details."""
    return GoalValidationError(message, field=field, details=details)


def activity_source_error(message: str, retryable: bool = True, **details) -> ActivitySourceError:
    """Create an activity source error with details."""
    return ActivitySourceError(message, retryable=retryable, details=details)
