"""
Transaction Queries

DESIGN DECISION: Reports are DETERMINISTIC reads of the transaction log.
They never estimate, never touch storage and never change the log.
Anything shown to the user as a total comes from these functions or
from the balance projections.

Transfers move money between containers, they are neither income nor
spending, so they are excluded from summaries and category reports.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, model_validator

from pocket_ledger.models.transaction import (
    CategoryTotal,
    Transaction,
    TransactionKind,
    TransactionSummary,
)


class TransactionFilters(BaseModel):
    """Optional constraints; unset fields match everything."""

    kind: Optional[TransactionKind] = None
    category: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    pocket_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_date_range(self) -> 'TransactionFilters':
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    def matches(self, tx: Transaction) -> bool:
        if self.kind is not None and tx.kind != self.kind:
            return False
        if self.category is not None and tx.category != self.category:
            return False
        if self.start_date is not None and tx.date < self.start_date:
            return False
        if self.end_date is not None and tx.date > self.end_date:
            return False
        if self.pocket_id is not None and not tx.touches_pocket(self.pocket_id):
            return False
        return True

    def describe(self) -> str:
        """Human readable summary of the active filters."""
        desc_parts = ["Transactions"]
        if self.kind:
            desc_parts.append(f"kind: {self.kind.value}")
        if self.category:
            desc_parts.append(f"category: {self.category}")
        if self.pocket_id:
            desc_parts.append(f"pocket: {self.pocket_id}")
        if self.start_date or self.end_date:
            desc_parts.append(_date_range_str(self.start_date, self.end_date))
        return " | ".join(desc_parts)


def _date_range_str(date_from: Optional[date], date_to: Optional[date]) -> str:
    if date_from and date_to:
        return f"from {date_from} to {date_to}"
    elif date_from:
        return f"since {date_from}"
    elif date_to:
        return f"until {date_to}"
    return ""


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: Optional[TransactionFilters] = None,
) -> list[Transaction]:
    """Transactions matching every set filter, in log order."""
    if filters is None:
        return list(transactions)
    return [tx for tx in transactions if filters.matches(tx)]


def summarize(transactions: Iterable[Transaction]) -> TransactionSummary:
    """Income and expense totals. Transfers are ignored."""
    total_income = Decimal("0")
    total_expenses = Decimal("0")
    income_count = 0
    expense_count = 0

    for tx in transactions:
        if tx.kind == TransactionKind.INCOME:
            total_income += tx.amount
            income_count += 1
        elif tx.kind == TransactionKind.EXPENSE:
            total_expenses += tx.amount
            expense_count += 1

    return TransactionSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        income_count=income_count,
        expense_count=expense_count,
    )


def categories(transactions: Iterable[Transaction]) -> list[str]:
    """Sorted distinct categories of non-transfer entries."""
    found = {
        tx.category for tx in transactions
        if tx.kind != TransactionKind.TRANSFER and tx.category
    }
    return sorted(found)


def totals_by_category(
    transactions: Iterable[Transaction],
    kind: TransactionKind = TransactionKind.EXPENSE,
) -> list[CategoryTotal]:
    """
    Per-category totals for one kind, largest first.

    Entries without a category are grouped under "Uncategorized".
    """
    if kind == TransactionKind.TRANSFER:
        raise ValueError("Transfers have no category breakdown")

    totals: dict[str, Decimal] = defaultdict(Decimal)
    counts: dict[str, int] = defaultdict(int)
    for tx in transactions:
        if tx.kind != kind:
            continue
        key = tx.category or "Uncategorized"
        totals[key] += tx.amount
        counts[key] += 1

    rows = [
        CategoryTotal(category=key, total=total, count=counts[key])
        for key, total in totals.items()
    ]
    rows.sort(key=lambda r: (-r.total, r.category))
    return rows


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 5,
) -> list[Transaction]:
    """Newest entries by date, then creation time."""
    ordered = sorted(
        transactions,
        key=lambda tx: (tx.date, tx.created_at),
        reverse=True,
    )
    return ordered[:limit]
