"""
Goal creation validation.

Turns an untrusted goal request (as received from a form or JSON body) into a
``Goal``. Every rejection is a ``GoalValidationError`` whose message is safe to
show to the user and whose ``field`` names the offending input.
"""

import math
import uuid
from datetime import date
from typing import Any, Mapping, Optional

from ..const import MAX_PENALTY_USD, MAX_TARGET_KM
from ..exceptions import GoalValidationError
from ..models import ActivityType, Goal, GoalFrequency, parse_type_filter

VALID_TYPE_NAMES = [t.value for t in ActivityType] + ["any"]


def _parse_number(value: Any, field: str, label: str) -> float:
    if isinstance(value, bool):
        raise GoalValidationError(f"{label} must be a number", field=field)
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise GoalValidationError(f"{label} must be a number", field=field)
    if math.isnan(parsed):
        raise GoalValidationError(f"{label} must be a number", field=field)
    return parsed


def validate_target(value: Any) -> float:
    target = _parse_number(value, "target", "Target")
    if target <= 0:
        raise GoalValidationError("Target must be a positive number", field="target")
    if target > MAX_TARGET_KM:
        raise GoalValidationError(f"Target cannot exceed {MAX_TARGET_KM:g} km", field="target")
    return target


def validate_penalty(value: Any) -> float:
    penalty = _parse_number(value, "penalty", "Penalty")
    if penalty < 0:
        raise GoalValidationError("Penalty must be a non-negative number", field="penalty")
    if penalty > MAX_PENALTY_USD:
        raise GoalValidationError(f"Penalty cannot exceed ${MAX_PENALTY_USD:g} for safety", field="penalty")
    return penalty


def validate_frequency(value: Optional[str]) -> GoalFrequency:
    if value is None:
        return GoalFrequency.WEEKLY
    try:
        return GoalFrequency(value)
    except ValueError:
        raise GoalValidationError('Frequency must be "weekly" or "monthly"', field="frequency")


def validate_goal_request(payload: Mapping[str, Any], today: date, goal_id: Optional[str] = None) -> Goal:
    """
    Validate a goal creation request and build the goal.

    Args:
        payload: Mapping with ``type``, ``target``, ``penalty`` and optional
            ``frequency`` / ``start_date``
        today: Local date used when no start date is given
        goal_id: Identifier to assign (a new UUID when omitted)

    Raises:
        GoalValidationError: on the first invalid field
    """
    type_name = payload.get("type")
    if not type_name:
        raise GoalValidationError("Activity type is required", field="type")
    type_filter = parse_type_filter(type_name)

    if payload.get("target") is None:
        raise GoalValidationError("Target is required", field="target")
    if payload.get("penalty") is None:
        raise GoalValidationError("Penalty is required", field="penalty")

    target = validate_target(payload["target"])
    penalty = validate_penalty(payload["penalty"])
    frequency = validate_frequency(payload.get("frequency"))

    start_date = payload.get("start_date") or today
    if isinstance(start_date, str):
        try:
            start_date = date.fromisoformat(start_date)
        except ValueError:
            raise GoalValidationError("Start date must be an ISO date (YYYY-MM-DD)", field="start_date")

    return Goal(
        goal_id=goal_id or str(uuid.uuid4()),
        type_filter=type_filter,
        target_km=target,
        penalty_amount=penalty,
        frequency=frequency,
        start_date=start_date,
    )
