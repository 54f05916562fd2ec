"""
Tests for goal evaluation.
"""

import pytest
from datetime import date, datetime, timezone

from stakeflow.goals.evaluator import GoalEvaluator, goal_progress_summary
from stakeflow.models import ActivityType, GoalFrequency, GoalStatus

from conftest import NOW, make_activity, make_goal

UTC = timezone.utc


@pytest.fixture
def evaluator():
    return GoalEvaluator(UTC)


class TestEvaluate:
    """Test single goal evaluation."""

    def test_two_activities_short_of_target(self, evaluator):
        goal = make_goal(target_km=50)
        activities = [
            make_activity(1, distance=10000, moving_time=3000, start=datetime(2024, 6, 10, 7, tzinfo=UTC)),
            make_activity(2, distance=15000, moving_time=4500, start=datetime(2024, 6, 11, 7, tzinfo=UTC)),
        ]

        evaluation = evaluator.evaluate(goal, activities, NOW)

        assert evaluation.progress_km == pytest.approx(25.0)
        assert evaluation.met is False
        assert evaluation.status == GoalStatus.MISSED

    def test_single_activity_meets_target(self, evaluator):
        goal = make_goal(target_km=50)
        activities = [make_activity(1, distance=60000, moving_time=21600,
                                    start=datetime(2024, 6, 11, 7, tzinfo=UTC))]

        evaluation = evaluator.evaluate(goal, activities, NOW)

        assert evaluation.progress_km == pytest.approx(60.0)
        assert evaluation.status == GoalStatus.MET

    def test_exactly_on_target_is_met(self, evaluator):
        goal = make_goal(target_km=10)
        evaluation = evaluator.evaluate(goal, [make_activity(1, distance=10000, moving_time=3000)], NOW)

        assert evaluation.met is True

    def test_only_current_weekly_period_counts(self, evaluator):
        goal = make_goal(target_km=5)
        activities = [
            make_activity(1, start=datetime(2024, 6, 9, 23, 59, tzinfo=UTC)),    # Sunday before the period
            make_activity(2, start=datetime(2024, 6, 17, 0, 0, tzinfo=UTC)),     # next period
        ]

        evaluation = evaluator.evaluate(goal, activities, NOW)

        assert evaluation.period_start == datetime(2024, 6, 10, tzinfo=UTC)
        assert evaluation.period_end == datetime(2024, 6, 17, tzinfo=UTC)
        assert evaluation.progress_km == 0

    def test_monthly_period(self, evaluator):
        goal = make_goal(target_km=10, frequency=GoalFrequency.MONTHLY)
        activities = [
            make_activity(1, start=datetime(2024, 6, 1, 0, 0, tzinfo=UTC)),
            make_activity(2, start=datetime(2024, 5, 31, 23, 0, tzinfo=UTC)),
        ]

        evaluation = evaluator.evaluate(goal, activities, NOW)

        assert evaluation.period_start == datetime(2024, 6, 1, tzinfo=UTC)
        assert evaluation.progress_km == pytest.approx(5.0)

    def test_type_filter(self, evaluator):
        goal = make_goal(target_km=5, type_filter="Ride")
        activities = [
            make_activity(1, distance=20000, moving_time=2400, activity_type=ActivityType.RIDE),
            make_activity(2, distance=5000),
        ]

        evaluation = evaluator.evaluate(goal, activities, NOW)

        assert evaluation.progress_km == pytest.approx(20.0)

    def test_activities_before_goal_start_date_do_not_count(self, evaluator):
        goal = make_goal(target_km=5, start_date=date(2024, 6, 11))
        activities = [
            make_activity(1, start=datetime(2024, 6, 10, 12, tzinfo=UTC)),
            make_activity(2, distance=3000, moving_time=900, start=datetime(2024, 6, 11, 0, 0, tzinfo=UTC)),
        ]

        evaluation = evaluator.evaluate(goal, activities, NOW)

        assert evaluation.progress_km == pytest.approx(3.0)
        assert evaluation.period_start == datetime(2024, 6, 10, tzinfo=UTC)

    def test_evaluation_is_idempotent_and_leaves_goal_unchanged(self, evaluator):
        goal = make_goal(target_km=20)
        before = goal.model_dump()
        activities = [make_activity(1)]

        first = evaluator.evaluate(goal, activities, NOW)
        second = evaluator.evaluate(goal, activities, NOW)

        assert first == second
        assert goal.model_dump() == before

    def test_progress_is_monotone(self, evaluator):
        goal = make_goal(target_km=100)
        activities = []
        previous = 0.0
        for i in range(1, 6):
            activities.append(make_activity(i, distance=1000 * i, moving_time=300 * i,
                                            start=datetime(2024, 6, 10, 6 + i, tzinfo=UTC)))
            progress = evaluator.evaluate(goal, activities, NOW).progress_km
            assert progress >= previous
            previous = progress


class TestEvaluateAll:
    """Test batch evaluation."""

    def test_inactive_goals_skipped(self, evaluator):
        goals = [make_goal("a"), make_goal("b", is_active=False), make_goal("c")]

        evaluations = evaluator.evaluate_all(goals, [make_activity(1)], NOW)

        assert [e.goal_id for e in evaluations] == ["a", "c"]

    def test_inactive_goal_evaluated_when_asked_directly(self, evaluator):
        goal = make_goal("b", target_km=1, is_active=False)

        assert evaluator.evaluate(goal, [make_activity(1)], NOW).met is True


class TestProgressSummary:
    """Test the dashboard summary."""

    def test_summary(self, evaluator):
        goals = [
            make_goal("a", target_km=5, penalty=10),
            make_goal("b", target_km=50, penalty=25),
            make_goal("c", target_km=5, penalty=99, is_active=False),
        ]
        evaluations = evaluator.evaluate_all(goals, [make_activity(1, distance=6000, moving_time=1800)], NOW)

        summary = goal_progress_summary(goals, evaluations, has_payment_method=True)

        assert summary.active_goals == 2
        assert summary.goals_on_track == 1
        assert summary.goals_behind == 1
        assert summary.total_progress_km == pytest.approx(12.0)
        assert summary.total_target_km == pytest.approx(55.0)
        assert summary.penalties_at_risk == pytest.approx(25.0)
        assert summary.to_dict()['has_payment_method'] is True
