"""
Ledger Package

The transaction log, its balance projections and the ledger exceptions.

Mutators live in their own modules (entries, transfers, reconciliation,
investment) and are imported from there; they depend on the validation
guard, which in turn depends on this package.
"""

from pocket_ledger.ledger.errors import (
    GoalBalanceExceededError,
    InsufficientBalanceError,
    LedgerError,
    LedgerValidationError,
    PlanLimitReachedError,
)
from pocket_ledger.ledger.projections import (
    goal_available_balance,
    goal_available_balances,
    goal_balances,
    pocket_balance,
    pocket_balances,
    total_value,
)
from pocket_ledger.ledger.log import TransactionLog

__all__ = [
    # Errors
    "GoalBalanceExceededError",
    "InsufficientBalanceError",
    "LedgerError",
    "LedgerValidationError",
    "PlanLimitReachedError",
    # Projections
    "goal_available_balance",
    "goal_available_balances",
    "goal_balances",
    "pocket_balance",
    "pocket_balances",
    "total_value",
    # Log
    "TransactionLog",
]
