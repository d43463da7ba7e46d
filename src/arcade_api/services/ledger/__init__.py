"""Ledger store primitives: balance mutation, transaction rows, audit trail."""

from .audit import AdminActionRecord, AdminAuditLog  # noqa: F401
from .balance import BalanceMutator  # noqa: F401
from .transactions import TransactionFilters, TransactionLedger  # noqa: F401
from .unit import atomic  # noqa: F401
