#!/usr/bin/env python3
"""
Services package - High-level services for stakeflow functionality
"""

from .statistics_service import StatisticsPayload, StatisticsService, compute_statistics
from .accountability_service import AccountabilityService, CycleReport

__all__ = [
    'StatisticsPayload', 'StatisticsService', 'compute_statistics',
    'AccountabilityService', 'CycleReport',
]
