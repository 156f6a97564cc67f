"""
Deletion Reconciliation

Compensating entries for a pocket that is being deleted.

Planning is a pure single pass over the log that produces a
(deletions, insertions) pair; applying it is one atomic batch commit.
Tests can assert on the plan without touching storage.

Rules, for a deleted pocket P:
- outbound transfer P -> Q: income of the same amount on Q, original deleted
- any other record owned by P: deleted outright (its value goes with P)
- inbound transfer Q -> P: expense of the same amount on Q, original deleted
- everything else: untouched

Every surviving pocket keeps its balance. The only value that leaves the
system is P's own balance, reported as `discarded_amount` so the caller
can warn the user before confirming.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from pocket_ledger.ledger.log import TransactionLog
from pocket_ledger.ledger.projections import ZERO, pocket_balance
from pocket_ledger.models.transaction import (
    EntryOrigin,
    Transaction,
    TransactionKind,
    utc_now,
)


logger = structlog.get_logger(__name__)


class ReconciliationPlan(BaseModel):
    """Deletions and compensating insertions for one pocket deletion."""

    pocket_id: str
    deletions: list[UUID] = Field(default_factory=list)
    insertions: list[Transaction] = Field(default_factory=list)
    discarded_amount: Decimal = ZERO

    @property
    def is_empty(self) -> bool:
        return not self.deletions and not self.insertions


def _compensating_entry(
    original: Transaction,
    kind: TransactionKind,
    pocket_id: str,
    description: str,
    origin: EntryOrigin,
    now: dt.datetime,
) -> Transaction:
    return Transaction(
        kind=kind,
        amount=original.amount,
        description=description,
        category="",
        date=original.date,
        created_at=now,
        updated_at=now,
        pocket_id=pocket_id,
        origin=origin,
    )


def plan_pocket_deletion(
    transactions: Iterable[Transaction],
    pocket_id: str,
    pocket_name: str = "Pocket",
    now: Optional[dt.datetime] = None,
) -> ReconciliationPlan:
    """
    Build the reconciliation plan for deleting `pocket_id`.

    Args:
        transactions: The full log
        pocket_id: Pocket being deleted
        pocket_name: Used as the description of compensating entries
        now: Timestamp for the inserted records

    Returns:
        ReconciliationPlan; nothing is written
    """
    now = now or utc_now()
    records = list(transactions)
    deletions: list[UUID] = []
    insertions: list[Transaction] = []

    for tx in records:
        if tx.pocket_id == pocket_id:
            if (
                tx.kind == TransactionKind.TRANSFER
                and tx.transfer_to_pocket_id is not None
                and tx.transfer_to_pocket_id != pocket_id
            ):
                insertions.append(
                    _compensating_entry(
                        tx,
                        TransactionKind.INCOME,
                        tx.transfer_to_pocket_id,
                        pocket_name,
                        EntryOrigin.TRANSFER_FROM_DELETED_POCKET,
                        now,
                    )
                )
            deletions.append(tx.id)
        elif tx.transfer_to_pocket_id == pocket_id:
            insertions.append(
                _compensating_entry(
                    tx,
                    TransactionKind.EXPENSE,
                    tx.pocket_id,
                    pocket_name,
                    EntryOrigin.TRANSFER_REVERTED_DELETED_POCKET,
                    now,
                )
            )
            deletions.append(tx.id)

    return ReconciliationPlan(
        pocket_id=pocket_id,
        deletions=deletions,
        insertions=insertions,
        discarded_amount=pocket_balance(records, pocket_id),
    )


def apply_reconciliation(log: TransactionLog, plan: ReconciliationPlan) -> None:
    """
    Commit a plan in one batch.

    Raises:
        StorageError: the commit failed and the log is unchanged
    """
    if plan.is_empty:
        return
    log.apply_batch(plan.deletions, plan.insertions)
    logger.info(
        "pocket_reconciled",
        pocket_id=plan.pocket_id,
        deleted=len(plan.deletions),
        inserted=len(plan.insertions),
        discarded_amount=str(plan.discarded_amount),
    )
