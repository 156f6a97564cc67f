"""
Entry Mutators

Validate and append plain income and expense records.

The mutators do NOT check pocket sufficiency: that needs a projection
of the whole log and is the orchestration layer's precondition
(LedgerService runs it under the pocket lock). Keeping it out of here
makes each mutator a cheap single-purpose append.
"""

from datetime import date
from typing import Optional

from pocket_ledger.ledger.errors import LedgerValidationError
from pocket_ledger.ledger.log import TransactionLog
from pocket_ledger.models.transaction import (
    EntryOrigin,
    Transaction,
    TransactionKind,
)
from pocket_ledger.validation.guard import Amount, LedgerGuard


def build_entry(
    kind: TransactionKind,
    pocket_id: str,
    amount: Amount,
    description: str = "",
    category: str = "",
    entry_date: Optional[date] = None,
    goal_id: Optional[str] = None,
    origin: EntryOrigin = EntryOrigin.USER,
    guard: Optional[LedgerGuard] = None,
) -> Transaction:
    """
    Validate the fields of an income or expense and build the record.

    Raises:
        LedgerValidationError: non-positive amount, transfer kind,
            or a goal on a non-income entry
    """
    guard = guard or LedgerGuard()

    if kind == TransactionKind.TRANSFER:
        raise LedgerValidationError("Transfers are recorded through the transfer protocol")

    value = guard.check_positive(amount)
    guard.check_goal_income_only(kind, goal_id)

    return Transaction(
        kind=kind,
        amount=value,
        description=description,
        category=category,
        date=guard.clamp_date(entry_date),
        pocket_id=pocket_id,
        goal_id=goal_id or None,
        origin=origin,
    )


def record_income(
    log: TransactionLog,
    pocket_id: str,
    amount: Amount,
    description: str = "",
    category: str = "",
    entry_date: Optional[date] = None,
    goal_id: Optional[str] = None,
    guard: Optional[LedgerGuard] = None,
) -> Transaction:
    """
    Append an income entry.

    With `goal_id` set the money is credited to the goal, not the pocket.
    """
    record = build_entry(
        TransactionKind.INCOME,
        pocket_id,
        amount,
        description=description,
        category=category,
        entry_date=entry_date,
        goal_id=goal_id,
        guard=guard,
    )
    return log.append(record)


def record_expense(
    log: TransactionLog,
    pocket_id: str,
    amount: Amount,
    description: str = "",
    category: str = "",
    entry_date: Optional[date] = None,
    goal_id: Optional[str] = None,
    guard: Optional[LedgerGuard] = None,
) -> Transaction:
    """
    Append an expense entry.

    `goal_id` is accepted only to be rejected: goals receive income only.
    """
    record = build_entry(
        TransactionKind.EXPENSE,
        pocket_id,
        amount,
        description=description,
        category=category,
        entry_date=entry_date,
        goal_id=goal_id,
        guard=guard,
    )
    return log.append(record)
