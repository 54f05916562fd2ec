"""
Penalty charging for missed goals.
"""

from .dispatcher import (
    ChargeCapability, ChargeResult, PenaltyDispatcher,
    to_cents, idempotency_key
)
from .ledger import ChargeLedger, InMemoryChargeLedger

__all__ = [
    'ChargeCapability', 'ChargeResult', 'PenaltyDispatcher',
    'to_cents', 'idempotency_key',
    'ChargeLedger', 'InMemoryChargeLedger',
]
