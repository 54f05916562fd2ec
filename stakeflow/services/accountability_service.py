#!/usr/bin/env python3
"""
Accountability Service - One evaluate-and-charge cycle for a user

Loads the user's activities and active goals, evaluates every goal over its
current period and hands the evaluations to the penalty dispatcher. If the
activities, goals or the payment method cannot be loaded the cycle stops
before anything is charged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..analytics.normalizer import ActivityNormalizer
from ..config import AnalyticsConfig, get_analytics_config
from ..exceptions import ActivitySourceError
from ..goals.evaluator import GoalEvaluator
from ..models import ChargeOutcome, GoalEvaluation
from ..penalties.dispatcher import PenaltyDispatcher
from ..storage.interface import ActivitySource, GoalSource, PaymentReferenceLookup
from ..utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CycleReport:
    """Evaluations and charge outcomes of one cycle"""
    user_id: str
    evaluations: List[GoalEvaluation] = field(default_factory=list)
    outcomes: List[ChargeOutcome] = field(default_factory=list)

    @property
    def charged_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.charged)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'evaluations': [e.model_dump(mode='json') for e in self.evaluations],
            'outcomes': [o.model_dump(mode='json') for o in self.outcomes],
        }


class AccountabilityService:
    """Evaluates a user's goals and dispatches penalties for missed ones"""

    def __init__(self,
                 activity_source: ActivitySource,
                 goal_source: GoalSource,
                 payment_lookup: PaymentReferenceLookup,
                 dispatcher: PenaltyDispatcher,
                 config: Optional[AnalyticsConfig] = None):
        self.activity_source = activity_source
        self.goal_source = goal_source
        self.payment_lookup = payment_lookup
        self.dispatcher = dispatcher
        self.config = get_analytics_config(config)
        self.normalizer = ActivityNormalizer(self.config)
        self.evaluator = GoalEvaluator(self.config.zone)

    @staticmethod
    def _load(what: str, user_id: str, loader: Callable[[str], T]) -> T:
        try:
            return loader(user_id)
        except ActivitySourceError:
            raise
        except Exception as exc:
            raise ActivitySourceError(
                f"Could not load {what}", retryable=True,
                details={"user_id": user_id, "error_type": type(exc).__name__},
            ) from exc

    def run_cycle(self, user_id: str, now: datetime) -> CycleReport:
        """
        Run one evaluation and charging cycle.

        Args:
            user_id: User to process
            now: Reference instant defining each goal's current period

        Returns:
            CycleReport with one evaluation per active goal and one outcome
            per evaluation

        Raises:
            ActivitySourceError: if activities, goals or the payment method are
                unavailable this cycle
        """
        raw = self._load("activities", user_id, self.activity_source.load_activities)
        goals = self._load("goals", user_id, self.goal_source.load_active_goals)
        payment_reference = self._load("payment method", user_id, self.payment_lookup.get_payment_reference)
        activities = self.normalizer.normalize(raw)

        evaluations = self.evaluator.evaluate_all(goals, activities, now)
        outcomes = self.dispatcher.dispatch(user_id, payment_reference, goals, evaluations)

        report = CycleReport(user_id=user_id, evaluations=evaluations, outcomes=outcomes)
        logger.info(
            "Accountability cycle complete",
            user_id=user_id,
            goals=len(evaluations),
            missed=sum(1 for e in evaluations if not e.met),
            charged=report.charged_count,
        )
        return report
