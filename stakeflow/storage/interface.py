#!/usr/bin/env python3
"""
Storage Layer Abstract Interface - Separates business logic from storage implementation

The core only reads activities, active goals and the payment reference. Load
failures are raised as ``ActivitySourceError`` and mean "data unavailable
this cycle".
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Activity, Goal


class ActivitySource(ABC):
    """Read access to a user's stored activities"""

    @abstractmethod
    def load_activities(self, user_id: str) -> List[Activity]:
        """Load raw activities; may contain duplicates by source_id"""
        pass


class GoalSource(ABC):
    """Read access to a user's goals"""

    @abstractmethod
    def load_active_goals(self, user_id: str) -> List[Goal]:
        pass


class PaymentReferenceLookup(ABC):
    """Read access to a user's stored payment method reference"""

    @abstractmethod
    def get_payment_reference(self, user_id: str) -> Optional[str]:
        pass
