#!/usr/bin/env python3
"""
Analytics exceptions.

Insufficient data is never an exception in this package: trend, correlation
and prediction functions return None instead. These exceptions signal
programming errors such as a non-positive bucket count.
"""

from ..exceptions import StakeflowError


class AnalyticsError(StakeflowError):
    """Base exception for analytics operations"""
    pass


class InvalidParameterError(AnalyticsError):
    """Raised when invalid parameters are provided"""
    pass
