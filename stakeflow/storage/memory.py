#!/usr/bin/env python3
"""
In-memory storage implementation.

Holds activities, goals and payment references per user. Activities are keyed
by ``source_id`` so re-syncing the same provider activity updates it in place.
"""

import threading
from typing import Dict, List, Optional

from ..models import Activity, Goal
from ..utils import get_logger
from .interface import ActivitySource, GoalSource, PaymentReferenceLookup

logger = get_logger(__name__)


class InMemoryStorage(ActivitySource, GoalSource, PaymentReferenceLookup):
    """Thread-safe dictionary-backed storage"""

    def __init__(self):
        self._lock = threading.RLock()
        self._activities: Dict[str, Dict[int, Activity]] = {}
        self._goals: Dict[str, Dict[str, Goal]] = {}
        self._payment_references: Dict[str, str] = {}

    # Activities

    def upsert_activity(self, user_id: str, activity: Activity) -> bool:
        """
        Insert or replace an activity by source_id.

        Returns:
            True if the activity was new
        """
        with self._lock:
            user_activities = self._activities.setdefault(user_id, {})
            created = activity.source_id not in user_activities
            user_activities[activity.source_id] = activity
            return created

    def delete_activity(self, source_id: int) -> bool:
        """Delete an activity from whichever user owns it."""
        with self._lock:
            for user_activities in self._activities.values():
                if user_activities.pop(source_id, None) is not None:
                    logger.debug("Deleted activity", source_id=source_id)
                    return True
            return False

    def load_activities(self, user_id: str) -> List[Activity]:
        with self._lock:
            return list(self._activities.get(user_id, {}).values())

    # Goals

    def save_goal(self, user_id: str, goal: Goal) -> None:
        with self._lock:
            self._goals.setdefault(user_id, {})[goal.goal_id] = goal

    def load_goals(self, user_id: str) -> List[Goal]:
        with self._lock:
            return list(self._goals.get(user_id, {}).values())

    def load_active_goals(self, user_id: str) -> List[Goal]:
        return [goal for goal in self.load_goals(user_id) if goal.is_active]

    # Payment method

    def set_payment_reference(self, user_id: str, reference: Optional[str]) -> None:
        with self._lock:
            if reference:
                self._payment_references[user_id] = reference
            else:
                self._payment_references.pop(user_id, None)

    def get_payment_reference(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._payment_references.get(user_id)

    # Account

    def purge_user(self, user_id: str) -> int:
        """
        Remove all of a user's activities, goals and payment reference.

        Returns:
            Number of activities removed
        """
        with self._lock:
            removed = len(self._activities.pop(user_id, {}))
            self._goals.pop(user_id, None)
            self._payment_references.pop(user_id, None)
        logger.info("Purged user data", user_id=user_id, activities_removed=removed)
        return removed
