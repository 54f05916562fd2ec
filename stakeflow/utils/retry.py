"""
Retry policies for StakeFlow's external calls.

Only the two suspending operations retry: fetching activities from the
provider and charging a penalty. Both have a finite attempt budget with
exponential backoff; anything outside the retryable exception set is raised
on the first failure.
"""

import logging
from typing import Optional, Tuple, Type

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from ..config import PenaltyConfig, StravaConfig, get_penalty_config, get_strava_config
from ..exceptions import ChargeTransientError

logger = logging.getLogger(__name__)

TRANSIENT_NETWORK_ERRORS: Tuple[Type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    requests.ConnectionError,
    requests.Timeout,
)


def tenacity_retry_config(
    operation: str,
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 60.0,
    retry_on_exceptions: Tuple[Type[Exception], ...] = (ConnectionError, TimeoutError),
):
    """
    Create a tenacity retry decorator.

    Args:
        operation: Name of the operation for logging
        max_attempts: Maximum attempts, including the first call
        min_wait: Minimum wait time between attempts
        max_wait: Maximum wait time between attempts
        retry_on_exceptions: Exceptions to retry on

    Returns:
        Tenacity retry decorator that re-raises the last error
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on_exceptions),
        before_sleep=before_sleep_log(logging.getLogger(f"{__name__}.{operation}"), logging.WARNING),
        reraise=True,
    )


def charge_retry_config(config: Optional[PenaltyConfig] = None):
    """Retry for penalty charges: transient provider failures only, never declines."""
    config = get_penalty_config(config)
    return tenacity_retry_config(
        operation="charge",
        max_attempts=config.max_attempts,
        min_wait=config.min_retry_wait,
        max_wait=config.max_retry_wait,
        retry_on_exceptions=(ChargeTransientError,) + TRANSIENT_NETWORK_ERRORS,
    )


def fetch_retry_config(config: Optional[StravaConfig] = None):
    """Retry for activity provider requests: connection failures and timeouts only."""
    config = get_strava_config(config)
    return tenacity_retry_config(
        operation="fetch",
        max_attempts=config.max_attempts,
        min_wait=1.0,
        max_wait=10.0,
        retry_on_exceptions=TRANSIENT_NETWORK_ERRORS,
    )
