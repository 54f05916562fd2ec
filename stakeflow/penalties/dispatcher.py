#!/usr/bin/env python3
"""
Penalty Dispatcher

Turns goal evaluations into charge outcomes. Met goals are never charged.
Missed goals are charged through an injected ``ChargeCapability`` unless the
user has no payment method, the penalty is zero, or the (goal, period) key
has already been charged.

Failures are recorded per goal and never raised: one goal's charge failing,
hanging or raising cannot prevent its siblings from being charged or
reported. A charge still running at its timeout is reported with
``charge_pending`` set; its idempotency key stays reserved so a later cycle
cannot charge the period again.
"""

import time
from abc import ABC, abstractmethod
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from ..config import PenaltyConfig, get_penalty_config
from ..const import NO_PAYMENT_METHOD_ERROR
from ..exceptions import ChargeError
from ..models import ChargeOutcome, Goal, GoalEvaluation, GoalStatus
from ..utils import get_logger
from ..utils.retry import charge_retry_config
from .ledger import ChargeLedger, InMemoryChargeLedger

logger = get_logger(__name__)

GENERIC_CHARGE_ERROR = "Payment provider error"
CHARGE_TIMEOUT_ERROR = "Charge did not complete in time"


def to_cents(amount_usd: float) -> int:
    """Convert a USD amount to integer cents, rounding half-up."""
    cents = Decimal(str(amount_usd)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def idempotency_key(goal_id: str, period_start: datetime) -> str:
    """Key identifying one goal's penalty for one period."""
    return f"{goal_id}:{period_start.isoformat()}"


@dataclass(frozen=True)
class ChargeResult:
    """Response of a charge capability"""
    success: bool
    reason: Optional[str] = None
    reference: Optional[str] = None


class ChargeCapability(ABC):
    """
    Payment provider boundary.

    Implementations raise ``ChargeTransientError`` for failures worth
    retrying and ``ChargeDeclinedError`` (or return an unsuccessful
    ``ChargeResult``) for definitive refusals. Error messages must not
    contain payment details.
    """

    @abstractmethod
    def charge_penalty(self, user_id: str, amount_cents: int, idempotency_key: str) -> ChargeResult:
        pass


class PenaltyDispatcher:
    """Charges missed goals and reports one outcome per evaluation"""

    def __init__(self,
                 capability: ChargeCapability,
                 ledger: Optional[ChargeLedger] = None,
                 config: Optional[PenaltyConfig] = None):
        self.capability = capability
        self.ledger = ledger or InMemoryChargeLedger()
        self.config = get_penalty_config(config)
        self._charge_with_retry = charge_retry_config(self.config)(self._call_capability)

    def _call_capability(self, user_id: str, amount_cents: int, key: str) -> ChargeResult:
        return self.capability.charge_penalty(user_id, amount_cents, key)

    def _charge(self, user_id: str, goal: Goal, evaluation: GoalEvaluation,
                amount_cents: int, key: str) -> ChargeOutcome:
        """Charge one goal. Runs on a worker thread; never raises."""
        try:
            result = self._charge_with_retry(user_id, amount_cents, key)
        except ChargeError as exc:
            self.ledger.release(key)
            logger.warning("Penalty charge failed", goal_id=goal.goal_id,
                           error_type=type(exc).__name__)
            return self._missed(evaluation, amount_cents, key, error=exc.message)
        except Exception as exc:
            self.ledger.release(key)
            logger.error("Penalty charge raised unexpectedly", goal_id=goal.goal_id,
                         error_type=type(exc).__name__)
            return self._missed(evaluation, amount_cents, key, error=GENERIC_CHARGE_ERROR)

        if not result.success:
            self.ledger.release(key)
            logger.warning("Penalty charge declined", goal_id=goal.goal_id)
            return self._missed(evaluation, amount_cents, key, error=result.reason or GENERIC_CHARGE_ERROR)

        self.ledger.commit(key, result.reference)
        logger.info("Penalty charged", goal_id=goal.goal_id, amount_cents=amount_cents)
        return ChargeOutcome(
            goal_id=evaluation.goal_id,
            status=GoalStatus.MISSED,
            charged=True,
            amount_cents=amount_cents,
            idempotency_key=key,
        )

    @staticmethod
    def _missed(evaluation: GoalEvaluation, amount_cents: Optional[int], key: Optional[str],
                error: Optional[str] = None, already_charged: bool = False,
                charge_pending: bool = False) -> ChargeOutcome:
        return ChargeOutcome(
            goal_id=evaluation.goal_id,
            status=GoalStatus.MISSED,
            charged=False,
            amount_cents=amount_cents,
            error=error,
            idempotency_key=key,
            already_charged=already_charged,
            charge_pending=charge_pending,
        )

    def dispatch(self,
                 user_id: str,
                 payment_reference: Optional[str],
                 goals: Sequence[Goal],
                 evaluations: Sequence[GoalEvaluation]) -> List[ChargeOutcome]:
        """
        Dispatch penalties for a batch of evaluations.

        Args:
            user_id: User being charged
            payment_reference: Stored payment method reference, None when absent
            goals: Goals the evaluations refer to
            evaluations: Evaluations to act on

        Returns:
            One ChargeOutcome per evaluation whose goal is known, in
            evaluation order
        """
        goals_by_id: Dict[str, Goal] = {goal.goal_id: goal for goal in goals}
        outcomes: Dict[int, ChargeOutcome] = {}
        pending = []

        for index, evaluation in enumerate(evaluations):
            goal = goals_by_id.get(evaluation.goal_id)
            if goal is None:
                logger.warning("Evaluation refers to unknown goal", goal_id=evaluation.goal_id)
                continue

            if evaluation.met:
                outcomes[index] = ChargeOutcome(goal_id=goal.goal_id, status=GoalStatus.MET)
                continue

            amount_cents = to_cents(goal.penalty_amount)
            key = idempotency_key(goal.goal_id, evaluation.period_start)

            if not payment_reference:
                outcomes[index] = self._missed(evaluation, amount_cents, key, error=NO_PAYMENT_METHOD_ERROR)
            elif amount_cents == 0:
                outcomes[index] = self._missed(evaluation, 0, key)
            elif not self.ledger.reserve(key):
                logger.info("Penalty already charged for period", goal_id=goal.goal_id)
                outcomes[index] = self._missed(evaluation, amount_cents, key, already_charged=True)
            else:
                pending.append((index, goal, evaluation, amount_cents, key))

        if pending:
            outcomes.update(self._charge_concurrently(user_id, pending))

        return [outcomes[index] for index in sorted(outcomes)]

    def _charge_concurrently(self, user_id: str, pending: list) -> Dict[int, ChargeOutcome]:
        """
        Charge pending goals, at most ``max_concurrency`` in flight at a time.

        Every submitted charge gets its own worker, so its timeout runs from
        the moment it starts. A charge that outlives its timeout stops
        counting toward the limit and its outcome is reported as pending;
        queued goals are still attempted.
        """
        results: Dict[int, ChargeOutcome] = {}
        queue = deque(pending)
        in_flight: Dict[Future, tuple] = {}
        timeout = self.config.charge_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=len(pending), thread_name_prefix="stakeflow-charge")
        try:
            while queue or in_flight:
                while queue and len(in_flight) < self.config.max_concurrency:
                    index, goal, evaluation, amount_cents, key = queue.popleft()
                    future = executor.submit(self._charge, user_id, goal, evaluation, amount_cents, key)
                    in_flight[future] = (index, evaluation, amount_cents, key, time.monotonic() + timeout)

                next_deadline = min(entry[4] for entry in in_flight.values())
                done, _ = wait(in_flight, timeout=max(0.0, next_deadline - time.monotonic()),
                               return_when=FIRST_COMPLETED)

                for future in done:
                    index = in_flight.pop(future)[0]
                    results[index] = future.result()

                now = time.monotonic()
                for future, (index, evaluation, amount_cents, key, deadline) in list(in_flight.items()):
                    if deadline > now:
                        continue
                    # The charge may still land, so its key stays reserved
                    del in_flight[future]
                    logger.error("Penalty charge timed out", goal_id=evaluation.goal_id, timeout_seconds=timeout)
                    results[index] = self._missed(evaluation, amount_cents, key,
                                                  error=CHARGE_TIMEOUT_ERROR, charge_pending=True)
        finally:
            executor.shutdown(wait=False)
        return results
