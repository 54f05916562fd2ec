"""
Tests for penalty dispatch.
"""

import threading
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

from stakeflow.config import PenaltyConfig
from stakeflow.exceptions import ChargeDeclinedError, ChargeTransientError
from stakeflow.models import GoalEvaluation, GoalStatus
from stakeflow.penalties import (
    ChargeResult, InMemoryChargeLedger, PenaltyDispatcher, idempotency_key, to_cents,
)
from stakeflow.penalties.dispatcher import CHARGE_TIMEOUT_ERROR, GENERIC_CHARGE_ERROR

from conftest import make_goal

UTC = timezone.utc
PERIOD_START = datetime(2024, 6, 10, tzinfo=UTC)
PERIOD_END = datetime(2024, 6, 17, tzinfo=UTC)


def evaluation(goal_id: str, met: bool, progress_km: float = 0.0, target_km: float = 50.0) -> GoalEvaluation:
    return GoalEvaluation(
        goal_id=goal_id,
        period_start=PERIOD_START,
        period_end=PERIOD_END,
        progress_km=progress_km,
        target_km=target_km,
        met=met,
    )


class TestToCents:
    """Test USD to cents conversion."""

    @pytest.mark.parametrize("amount,cents", [
        (0, 0),
        (10, 1000),
        (19.99, 1999),
        (0.1 + 0.2, 30),
        (1.005, 101),
        (500, 50000),
    ])
    def test_conversion(self, amount, cents):
        assert to_cents(amount) == cents


class TestLedger:
    """Test the in-memory charge ledger."""

    def test_reserve_commit_release(self):
        ledger = InMemoryChargeLedger()

        assert ledger.reserve("k")
        assert not ledger.reserve("k")
        ledger.release("k")
        assert ledger.reserve("k")
        ledger.commit("k", "ch_1")

        assert ledger.is_charged("k")
        assert ledger.reference_for("k") == "ch_1"
        assert not ledger.reserve("k")


class TestDispatch:
    """Test dispatch outcomes."""

    def test_met_goal_is_not_charged(self, successful_capability, penalty_config):
        goal = make_goal("a")
        dispatcher = PenaltyDispatcher(successful_capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [goal], [evaluation("a", met=True)])

        assert outcomes[0].status == GoalStatus.MET
        assert outcomes[0].charged is False
        successful_capability.charge_penalty.assert_not_called()

    def test_missed_goal_is_charged_in_cents_with_idempotency_key(self, successful_capability, penalty_config):
        goal = make_goal("a", penalty=12.5)
        dispatcher = PenaltyDispatcher(successful_capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [goal], [evaluation("a", met=False)])

        key = idempotency_key("a", PERIOD_START)
        assert key == "a:2024-06-10T00:00:00+00:00"
        successful_capability.charge_penalty.assert_called_once_with("user-1", 1250, key)
        assert outcomes[0].status == GoalStatus.MISSED
        assert outcomes[0].charged is True
        assert outcomes[0].amount_cents == 1250
        assert outcomes[0].idempotency_key == key

    def test_no_payment_method(self, successful_capability, penalty_config):
        goals = [make_goal("a"), make_goal("b"), make_goal("c")]
        evaluations = [evaluation("a", met=False), evaluation("b", met=True, progress_km=55), evaluation("c", met=False)]
        dispatcher = PenaltyDispatcher(successful_capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", None, goals, evaluations)

        assert [o.goal_id for o in outcomes] == ["a", "b", "c"]
        assert outcomes[0].status == GoalStatus.MISSED
        assert outcomes[0].charged is False
        assert outcomes[0].error == "no payment method"
        assert outcomes[1].status == GoalStatus.MET
        assert outcomes[1].error is None
        assert outcomes[2].error == "no payment method"
        successful_capability.charge_penalty.assert_not_called()

    def test_zero_penalty_is_not_charged(self, successful_capability, penalty_config):
        goal = make_goal("a", penalty=0)
        dispatcher = PenaltyDispatcher(successful_capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [goal], [evaluation("a", met=False)])

        assert outcomes[0].status == GoalStatus.MISSED
        assert outcomes[0].charged is False
        assert outcomes[0].amount_cents == 0
        assert outcomes[0].error is None
        successful_capability.charge_penalty.assert_not_called()

    def test_repeated_cycle_does_not_double_charge(self, successful_capability, penalty_config):
        goal = make_goal("a")
        dispatcher = PenaltyDispatcher(successful_capability, InMemoryChargeLedger(), penalty_config)

        first = dispatcher.dispatch("user-1", "pm_123", [goal], [evaluation("a", met=False)])
        second = dispatcher.dispatch("user-1", "pm_123", [goal], [evaluation("a", met=False)])

        assert first[0].charged is True
        assert second[0].charged is False
        assert second[0].already_charged is True
        assert successful_capability.charge_penalty.call_count == 1

    def test_unknown_goal_is_skipped(self, successful_capability, penalty_config):
        dispatcher = PenaltyDispatcher(successful_capability, config=penalty_config)

        assert dispatcher.dispatch("user-1", "pm_123", [], [evaluation("ghost", met=False)]) == []


class TestChargeFailures:
    """Test per-goal failure isolation."""

    def test_declined_result_recorded_and_siblings_charged(self, penalty_config):
        capability = Mock()

        def charge(user_id, amount_cents, key):
            if key.startswith("a:"):
                return ChargeResult(success=False, reason="Card declined")
            return ChargeResult(success=True, reference="ch_b")

        capability.charge_penalty.side_effect = charge
        ledger = InMemoryChargeLedger()
        goals = [make_goal("a"), make_goal("b")]
        dispatcher = PenaltyDispatcher(capability, ledger, penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", goals, [evaluation("a", False), evaluation("b", False)])

        assert outcomes[0].charged is False
        assert outcomes[0].error == "Card declined"
        assert outcomes[1].charged is True
        assert not ledger.is_charged(idempotency_key("a", PERIOD_START))
        assert ledger.is_charged(idempotency_key("b", PERIOD_START))

    def test_declined_error_is_not_retried(self, penalty_config):
        capability = Mock()
        capability.charge_penalty.side_effect = ChargeDeclinedError("Insufficient funds")
        dispatcher = PenaltyDispatcher(capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [make_goal("a")], [evaluation("a", False)])

        assert outcomes[0].error == "Insufficient funds"
        assert capability.charge_penalty.call_count == 1

    def test_transient_error_is_retried(self, penalty_config):
        capability = Mock()
        capability.charge_penalty.side_effect = [
            ChargeTransientError("Payment provider unavailable"),
            ChargeResult(success=True, reference="ch_1"),
        ]
        dispatcher = PenaltyDispatcher(capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [make_goal("a")], [evaluation("a", False)])

        assert outcomes[0].charged is True
        assert capability.charge_penalty.call_count == 2

    def test_retry_budget_is_finite(self, penalty_config):
        capability = Mock()
        capability.charge_penalty.side_effect = ChargeTransientError("Payment provider unavailable")
        dispatcher = PenaltyDispatcher(capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [make_goal("a")], [evaluation("a", False)])

        assert outcomes[0].charged is False
        assert outcomes[0].error == "Payment provider unavailable"
        assert capability.charge_penalty.call_count == penalty_config.max_attempts

    def test_unexpected_error_message_is_not_leaked(self, penalty_config):
        capability = Mock()
        capability.charge_penalty.side_effect = RuntimeError("card 4242424242424242 cvc 123")
        dispatcher = PenaltyDispatcher(capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [make_goal("a")], [evaluation("a", False)])

        assert outcomes[0].error == GENERIC_CHARGE_ERROR
        assert "4242" not in outcomes[0].error

    def test_hanging_charge_times_out_without_blocking_siblings(self):
        release = threading.Event()
        capability = Mock()

        def charge(user_id, amount_cents, key):
            if key.startswith("slow:"):
                release.wait(5)
            return ChargeResult(success=True)

        capability.charge_penalty.side_effect = charge
        config = PenaltyConfig(max_attempts=1, min_retry_wait=0, max_retry_wait=0,
                               charge_timeout_seconds=0.2, max_concurrency=2)
        goals = [make_goal("slow"), make_goal("fast")]
        dispatcher = PenaltyDispatcher(capability, config=config)

        try:
            outcomes = dispatcher.dispatch("user-1", "pm_123", goals,
                                           [evaluation("slow", False), evaluation("fast", False)])
        finally:
            release.set()

        assert outcomes[0].goal_id == "slow"
        assert outcomes[0].charged is False
        assert outcomes[0].error == CHARGE_TIMEOUT_ERROR
        assert outcomes[1].charged is True
        assert outcomes[0].charge_pending is True
        assert outcomes[1].charge_pending is False

    def test_queued_goals_are_attempted_behind_hanging_charges(self):
        release = threading.Event()
        attempted = []
        capability = Mock()

        def charge(user_id, amount_cents, key):
            attempted.append(key.split(":")[0])
            if key.startswith("slow"):
                release.wait(5)
            return ChargeResult(success=True, reference="ch_1")

        capability.charge_penalty.side_effect = charge
        config = PenaltyConfig(max_attempts=1, min_retry_wait=0, max_retry_wait=0,
                               charge_timeout_seconds=0.2, max_concurrency=2)
        goal_ids = ["slow1", "slow2", "slow3", "fast"]
        ledger = InMemoryChargeLedger()
        dispatcher = PenaltyDispatcher(capability, ledger, config)

        try:
            outcomes = dispatcher.dispatch("user-1", "pm_123", [make_goal(g) for g in goal_ids],
                                           [evaluation(g, False) for g in goal_ids])
        finally:
            release.set()

        assert sorted(attempted) == sorted(goal_ids)
        assert [o.goal_id for o in outcomes] == goal_ids
        for outcome in outcomes[:3]:
            assert outcome.charged is False
            assert outcome.charge_pending is True
            assert outcome.error == CHARGE_TIMEOUT_ERROR
        assert outcomes[3].charged is True
        assert outcomes[3].charge_pending is False
        assert outcomes[3].error is None
        # an unconfirmed charge keeps its key so the period cannot be charged twice
        assert not ledger.reserve(idempotency_key("slow1", PERIOD_START))

    def test_failed_charge_is_not_pending(self, penalty_config):
        capability = Mock()
        capability.charge_penalty.side_effect = ChargeDeclinedError("Card declined")
        dispatcher = PenaltyDispatcher(capability, config=penalty_config)

        outcomes = dispatcher.dispatch("user-1", "pm_123", [make_goal("a")], [evaluation("a", False)])

        assert outcomes[0].charge_pending is False
        assert outcomes[0].charged is False
