#!/usr/bin/env python3
"""
Goal Evaluator

Decides whether a goal's distance target was reached over its current period.
Evaluation is a pure function of (goal, activities, now): it never mutates the
goal, never reads a clock, and evaluating twice gives the same verdict.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..models import Activity, Goal, GoalEvaluation
from ..utils import get_logger
from ..analytics.windows import TimeWindow, local_midnight, period_for, resolve_zone

logger = get_logger(__name__)


class GoalEvaluator:
    """Evaluates goals against the activities recorded in their period"""

    def __init__(self, tz: Union[tzinfo, str, None] = None):
        self.zone = resolve_zone(tz)

    def period(self, goal: Goal, now: datetime) -> TimeWindow:
        """Current [start, end) period of the goal."""
        return period_for(goal.frequency, now, self.zone)

    def counting_window(self, goal: Goal, now: datetime) -> TimeWindow:
        """
        Window in which activities count toward the goal.

        Activities before the goal's start date never count, even if they fall
        inside the first period.
        """
        period = self.period(goal, now)
        goal_start = local_midnight(goal.start_date, self.zone)
        return TimeWindow(max(period.start, goal_start), period.end)

    def qualifying_activities(self, goal: Goal, activities: Iterable[Activity], now: datetime) -> List[Activity]:
        """Activities matching the goal's type filter inside its counting window."""
        window = self.counting_window(goal, now)
        return [
            a for a in activities
            if goal.type_filter.matches(a.activity_type) and window.contains(a.start_timestamp)
        ]

    def evaluate(self, goal: Goal, activities: Iterable[Activity], now: datetime) -> GoalEvaluation:
        """
        Evaluate one goal.

        Args:
            goal: Goal to evaluate (evaluated even when inactive)
            activities: Normalized activity working set
            now: Reference instant defining the current period

        Returns:
            GoalEvaluation with progress in km and the met verdict
        """
        period = self.period(goal, now)
        qualifying = self.qualifying_activities(goal, activities, now)
        progress_km = sum(a.distance_meters for a in qualifying) / 1000

        evaluation = GoalEvaluation(
            goal_id=goal.goal_id,
            period_start=period.start,
            period_end=period.end,
            progress_km=progress_km,
            target_km=goal.target_km,
            met=progress_km >= goal.target_km,
        )
        logger.debug(
            "Evaluated goal",
            goal_id=goal.goal_id,
            progress_km=round(progress_km, 3),
            target_km=goal.target_km,
            status=evaluation.status.value,
            activities=len(qualifying),
        )
        return evaluation

    def evaluate_all(self, goals: Iterable[Goal], activities: Sequence[Activity], now: datetime) -> List[GoalEvaluation]:
        """Evaluate every active goal; inactive goals are skipped."""
        return [self.evaluate(goal, activities, now) for goal in goals if goal.is_active]


@dataclass
class GoalProgressSummary:
    """Dashboard overview of a user's goals"""
    active_goals: int = 0
    goals_on_track: int = 0
    goals_behind: int = 0
    total_progress_km: float = 0.0
    total_target_km: float = 0.0
    penalties_at_risk: float = 0.0
    has_payment_method: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def goal_progress_summary(goals: Sequence[Goal],
                          evaluations: Sequence[GoalEvaluation],
                          has_payment_method: bool) -> GoalProgressSummary:
    """
    Summarize evaluations of active goals.

    ``penalties_at_risk`` is the summed penalty (USD) of goals not yet met.
    """
    by_id = {goal.goal_id: goal for goal in goals if goal.is_active}
    summary = GoalProgressSummary(active_goals=len(by_id), has_payment_method=has_payment_method)
    for evaluation in evaluations:
        goal: Optional[Goal] = by_id.get(evaluation.goal_id)
        if goal is None:
            continue
        summary.total_progress_km += evaluation.progress_km
        summary.total_target_km += evaluation.target_km
        if evaluation.met:
            summary.goals_on_track += 1
        else:
            summary.goals_behind += 1
            summary.penalties_at_risk += goal.penalty_amount
    return summary
