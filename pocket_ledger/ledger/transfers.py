"""
Transfer Protocol

Moves money between pockets and goals as single transfer records.

One record, one append: a transfer is never split into a debit and a
credit entry, so it is recorded completely or not at all.

Transfers are always dated today and carry fixed descriptions; the
user does not choose either.

Only withdrawals are checked against a balance. Pocket transfers and
allocations may take the source pocket below zero.
"""

from typing import Optional

from pocket_ledger.ledger.log import TransactionLog
from pocket_ledger.models.transaction import Transaction, TransactionKind
from pocket_ledger.validation.guard import Amount, LedgerGuard


POCKET_TRANSFER_DESCRIPTION = "Transfer to pocket"
ALLOCATION_DESCRIPTION = "Allocation to goal"
WITHDRAWAL_DESCRIPTION = "Withdrawal from goal"


def transfer_between_pockets(
    log: TransactionLog,
    from_pocket_id: str,
    to_pocket_id: str,
    amount: Amount,
    guard: Optional[LedgerGuard] = None,
) -> Transaction:
    """
    Move money from one pocket to another.

    Raises:
        LedgerValidationError: same pocket or non-positive amount
    """
    guard = guard or LedgerGuard()
    guard.check_distinct_pockets(from_pocket_id, to_pocket_id)
    value = guard.check_positive(amount)

    record = Transaction(
        kind=TransactionKind.TRANSFER,
        amount=value,
        description=POCKET_TRANSFER_DESCRIPTION,
        date=guard.today(),
        pocket_id=from_pocket_id,
        transfer_to_pocket_id=to_pocket_id,
    )
    return log.append(record)


def allocate_to_goal(
    log: TransactionLog,
    from_pocket_id: str,
    to_goal_id: str,
    amount: Amount,
    guard: Optional[LedgerGuard] = None,
) -> Transaction:
    """
    Move money from a pocket into a goal.

    Raises:
        LedgerValidationError: non-positive amount
    """
    guard = guard or LedgerGuard()
    value = guard.check_positive(amount)

    record = Transaction(
        kind=TransactionKind.TRANSFER,
        amount=value,
        description=ALLOCATION_DESCRIPTION,
        date=guard.today(),
        pocket_id=from_pocket_id,
        transfer_to_goal_id=to_goal_id,
    )
    return log.append(record)


def withdraw_from_goal(
    log: TransactionLog,
    from_goal_id: str,
    to_pocket_id: str,
    amount: Amount,
    guard: Optional[LedgerGuard] = None,
) -> Transaction:
    """
    Move money out of a goal into a pocket.

    The record's `pocket_id` is the receiving pocket; the goal is
    named by `goal_id`.

    Raises:
        GoalBalanceExceededError: goal holds less than the amount
    """
    guard = guard or LedgerGuard()
    value = guard.check_positive(amount)
    guard.check_goal_withdrawal(log, from_goal_id, value)

    record = Transaction(
        kind=TransactionKind.TRANSFER,
        amount=value,
        description=WITHDRAWAL_DESCRIPTION,
        date=guard.today(),
        pocket_id=to_pocket_id,
        goal_id=from_goal_id,
        transfer_to_pocket_id=to_pocket_id,
    )
    return log.append(record)
