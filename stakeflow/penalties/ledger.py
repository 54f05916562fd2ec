#!/usr/bin/env python3
"""
Charge ledger

Records which (goal, period) penalties have been charged so that a repeated
evaluation cycle in the same period never charges twice. A key is first
reserved, then either committed after a successful charge or released after a
failed one.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional


class ChargeLedger(ABC):
    """Abstract store of charged idempotency keys"""

    @abstractmethod
    def reserve(self, key: str) -> bool:
        """
        Claim a key before charging.

        Returns:
            False if the key is already charged or being charged
        """
        pass

    @abstractmethod
    def commit(self, key: str, reference: Optional[str] = None) -> None:
        """Mark a reserved key as charged"""
        pass

    @abstractmethod
    def release(self, key: str) -> None:
        """Give up a reservation after a failed charge"""
        pass

    @abstractmethod
    def is_charged(self, key: str) -> bool:
        pass


class InMemoryChargeLedger(ChargeLedger):
    """Thread-safe in-process ledger"""

    def __init__(self):
        self._lock = threading.Lock()
        self._charged: Dict[str, Optional[str]] = {}
        self._pending = set()

    def reserve(self, key: str) -> bool:
        with self._lock:
            if key in self._charged or key in self._pending:
                return False
            self._pending.add(key)
            return True

    def commit(self, key: str, reference: Optional[str] = None) -> None:
        with self._lock:
            self._pending.discard(key)
            self._charged[key] = reference

    def release(self, key: str) -> None:
        with self._lock:
            self._pending.discard(key)

    def is_charged(self, key: str) -> bool:
        with self._lock:
            return key in self._charged

    def reference_for(self, key: str) -> Optional[str]:
        with self._lock:
            return self._charged.get(key)
