"""
Transaction Models for Pocket Ledger

A Transaction is the only fact the ledger persists. Pocket and goal
balances are never stored; they are folded from the full log on demand.

DESIGN DECISION: Amounts are always positive. The direction of money is
carried by `kind` and by the transfer destination fields, never by a sign.

The shape of a transfer is a closed set of three variants:
- pocket to pocket:   transfer_to_pocket_id
- allocation to goal: transfer_to_goal_id
- withdrawal:         goal_id + transfer_to_pocket_id
Any other combination is rejected when the model is built.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """
    Kinds of ledger entries.

    Closed set: there are no user-defined kinds.
    """
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransferVariant(str, Enum):
    """Derived shape of a transfer entry."""
    POCKET_TO_POCKET = "pocket_to_pocket"
    ALLOCATION = "allocation"    # pocket -> goal
    WITHDRAWAL = "withdrawal"    # goal -> pocket


class EntryOrigin(str, Enum):
    """
    Where an entry came from.

    Reconciliation entries are tagged so the UI can attribute them
    to the pocket that was deleted.
    """
    USER = "user"
    TRANSFER_FROM_DELETED_POCKET = "transfer_from_deleted_pocket"
    TRANSFER_REVERTED_DELETED_POCKET = "transfer_reverted_deleted_pocket"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry.

    Records are immutable; TransactionLog.update builds a replacement
    that keeps `id` and `created_at`.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    kind: TransactionKind = Field(
        ...,
        description="Income, expense or transfer"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive monetary amount"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    category: str = Field(
        default="",
        max_length=100,
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the entry (never after today)"
    )

    # Timestamps
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    # Attribution
    pocket_id: str = Field(
        ...,
        min_length=1,
        description="Source pocket for expense/transfer, receiving pocket for income"
    )
    transfer_to_pocket_id: Optional[str] = None
    goal_id: Optional[str] = None
    transfer_to_goal_id: Optional[str] = None

    origin: EntryOrigin = Field(
        default=EntryOrigin.USER,
        description="Display attribution for reconciliation entries"
    )

    @model_validator(mode='after')
    def validate_shape(self) -> 'Transaction':
        """Enforce the per-kind field combinations."""
        if self.kind == TransactionKind.TRANSFER:
            # Raises for any combination outside the three variants
            self.transfer_variant
            return self

        if self.transfer_to_pocket_id or self.transfer_to_goal_id:
            raise ValueError(
                f"Only transfers may carry a transfer destination (kind: {self.kind.value})"
            )
        if self.kind == TransactionKind.EXPENSE and self.goal_id:
            raise ValueError("Goals can only receive income transactions")
        return self

    @property
    def transfer_variant(self) -> Optional[TransferVariant]:
        """Resolve which transfer shape this entry has, or None for non-transfers."""
        if self.kind != TransactionKind.TRANSFER:
            return None

        to_pocket = self.transfer_to_pocket_id is not None
        to_goal = self.transfer_to_goal_id is not None
        from_goal = self.goal_id is not None

        if to_goal and not to_pocket and not from_goal:
            return TransferVariant.ALLOCATION
        if from_goal and to_pocket and not to_goal:
            return TransferVariant.WITHDRAWAL
        if to_pocket and not to_goal and not from_goal:
            return TransferVariant.POCKET_TO_POCKET

        raise ValueError(
            "Transfer must target exactly one of: a pocket, a goal, "
            "or a pocket from a goal"
        )

    @property
    def is_transfer(self) -> bool:
        return self.kind == TransactionKind.TRANSFER

    def touches_pocket(self, pocket_id: str) -> bool:
        """True if this entry names the pocket as source or destination."""
        return self.pocket_id == pocket_id or self.transfer_to_pocket_id == pocket_id


# =============================================================================
# INPUT MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    Candidate transaction fields from an external collaborator.

    Receipt scanning and text parsing produce these. They are
    PROPOSED data and go through the same entry points as manual input.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: TransactionKind
    amount: Decimal
    description: str = ""
    category: str = ""
    date: Optional[dt.date] = None


class TransactionSummary(BaseModel):
    """Income/expense totals. Transfers are excluded."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    income_count: int = Field(default=0, ge=0)
    expense_count: int = Field(default=0, ge=0)


class CategoryTotal(BaseModel):
    """Aggregated amount for one category."""

    category: str
    total: Decimal
    count: int = Field(ge=0)
