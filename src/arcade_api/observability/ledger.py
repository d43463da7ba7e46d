from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class LedgerSnapshot:
    committed: Dict[str, int]
    rejected: Dict[str, int]
    audit_failures: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "committed": dict(self.committed),
            "rejected": dict(self.rejected),
            "audit_failures": dict(self.audit_failures),
        }


class LedgerObservabilityStore:
    """Count engine outcomes for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._committed: Dict[str, int] = defaultdict(int)
        self._rejected: Dict[str, int] = defaultdict(int)
        self._audit_failures: Dict[str, int] = defaultdict(int)

    def record_committed(self, operation: str) -> None:
        with self._lock:
            self._committed[operation] += 1

    def record_rejected(self, operation: str, reason: str) -> None:
        with self._lock:
            self._rejected[f"{operation}:{reason}"] += 1

    def record_audit_failure(self, action: str) -> None:
        with self._lock:
            self._audit_failures[action] += 1

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                committed=dict(self._committed),
                rejected=dict(self._rejected),
                audit_failures=dict(self._audit_failures),
            )

    def reset(self) -> None:
        with self._lock:
            self._committed.clear()
            self._rejected.clear()
            self._audit_failures.clear()


_STORE = LedgerObservabilityStore()


def get_ledger_store() -> LedgerObservabilityStore:
    return _STORE


__all__ = ["get_ledger_store", "LedgerObservabilityStore", "LedgerSnapshot"]
