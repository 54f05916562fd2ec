"""
Storage collaborators.
"""

from .interface import ActivitySource, GoalSource, PaymentReferenceLookup
from .memory import InMemoryStorage

__all__ = ['ActivitySource', 'GoalSource', 'PaymentReferenceLookup', 'InMemoryStorage']
