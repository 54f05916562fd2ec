"""
Utility modules for StakeFlow.

- logging: Logging configuration and utilities
- retry: Retry policies for external calls
"""
from .logging import (
    LoggingConfig,
    setup_stakeflow_logging,
    get_logger,
)

__all__ = [
    'LoggingConfig',
    'setup_stakeflow_logging',
    'get_logger',
]
