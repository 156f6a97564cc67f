"""
Balance Projections

Pure folds over the full transaction log. No cached or incremental
state: the same log always yields the same balances.

Two goal metrics are published on purpose:
- goal_balances: lifetime income-funded total (income tagged with the goal)
- goal_available_balances: what the goal holds right now
  (income + allocations in - withdrawals out, never below zero)
Withdrawals are always decided against the available balance.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from pocket_ledger.models.transaction import (
    Transaction,
    TransactionKind,
    TransferVariant,
)


ZERO = Decimal("0")


def pocket_balances(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """
    Balance per pocket.

    Income tagged with a goal lives in the goal and does not touch any pocket.
    """
    balances: dict[str, Decimal] = defaultdict(Decimal)

    for tx in transactions:
        if tx.kind == TransactionKind.INCOME:
            if tx.goal_id is None:
                balances[tx.pocket_id] += tx.amount
        elif tx.kind == TransactionKind.EXPENSE:
            balances[tx.pocket_id] -= tx.amount
        elif tx.kind == TransactionKind.TRANSFER:
            variant = tx.transfer_variant
            if variant == TransferVariant.WITHDRAWAL:
                balances[tx.transfer_to_pocket_id] += tx.amount
            elif variant == TransferVariant.ALLOCATION:
                balances[tx.pocket_id] -= tx.amount
            elif variant == TransferVariant.POCKET_TO_POCKET:
                balances[tx.pocket_id] -= tx.amount
                balances[tx.transfer_to_pocket_id] += tx.amount
            else:
                raise ValueError(f"Unhandled transfer variant: {variant}")
        else:
            raise ValueError(f"Unhandled transaction kind: {tx.kind}")

    return dict(balances)


def goal_balances(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Lifetime income-funded total per goal. Transfers are not counted."""
    balances: dict[str, Decimal] = defaultdict(Decimal)

    for tx in transactions:
        if tx.kind == TransactionKind.INCOME and tx.goal_id is not None:
            balances[tx.goal_id] += tx.amount

    return dict(balances)


def goal_available_balances(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """
    Amount each goal currently holds and could pay out.

    The running balance is floored at zero after every withdrawal, so
    a withdrawal whose funding was later removed (e.g. the allocation
    went away with a deleted pocket) never leaves the goal negative.
    """
    balances: dict[str, Decimal] = defaultdict(Decimal)

    for tx in transactions:
        if tx.kind == TransactionKind.INCOME:
            if tx.goal_id is not None:
                balances[tx.goal_id] += tx.amount
        elif tx.kind == TransactionKind.EXPENSE:
            continue
        elif tx.kind == TransactionKind.TRANSFER:
            variant = tx.transfer_variant
            if variant == TransferVariant.ALLOCATION:
                balances[tx.transfer_to_goal_id] += tx.amount
            elif variant == TransferVariant.WITHDRAWAL:
                balances[tx.goal_id] = max(balances[tx.goal_id] - tx.amount, ZERO)
            elif variant == TransferVariant.POCKET_TO_POCKET:
                continue
            else:
                raise ValueError(f"Unhandled transfer variant: {variant}")
        else:
            raise ValueError(f"Unhandled transaction kind: {tx.kind}")

    return dict(balances)


def goal_available_balance(transactions: Iterable[Transaction], goal_id: str) -> Decimal:
    """Available balance of a single goal (zero if it never received money)."""
    return goal_available_balances(transactions).get(goal_id, ZERO)


def pocket_balance(transactions: Iterable[Transaction], pocket_id: str) -> Decimal:
    """Balance of a single pocket (zero if it has no entries)."""
    return pocket_balances(transactions).get(pocket_id, ZERO)


def total_value(balances: dict[str, Decimal]) -> Decimal:
    """Sum of a balance map."""
    return sum(balances.values(), ZERO)
