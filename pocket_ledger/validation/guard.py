"""
Ledger Validation Guard

Shared invariant checks used by the entry mutators, the transfer
protocol and the orchestration layer.

Checks:
- Positivity: amounts must be strictly greater than zero
- Goal income-only: a goal may receive income, never an expense
- Distinct pockets: a transfer must move money somewhere else
- Sufficiency: an expense may not exceed the pocket's projected balance
- Goal sufficiency: a withdrawal may not exceed the goal's available balance
- Future dates: silently rewritten to today, never rejected

IMPORTANT: Sufficiency is a point-in-time check against the projection
at the moment of the call. Callers that need it to hold until the append
must serialize the check and the append (see LedgerService).
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional, Union

import structlog

from pocket_ledger.ledger.errors import (
    GoalBalanceExceededError,
    InsufficientBalanceError,
    LedgerValidationError,
)
from pocket_ledger.ledger.projections import goal_available_balance, pocket_balance
from pocket_ledger.models.transaction import Transaction, TransactionKind


logger = structlog.get_logger(__name__)

Amount = Union[Decimal, int, str]


class LedgerGuard:
    """
    Validates requests before they reach the transaction log.

    `today` is injectable so date clamping can be tested deterministically.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def today(self) -> date:
        return self._today()

    def check_positive(self, amount: Amount, field: str = "amount") -> Decimal:
        """Coerce to Decimal and reject zero, negative or non-numeric amounts."""
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except InvalidOperation:
            raise LedgerValidationError(f"{field} must be a number, got {amount!r}")
        if not value.is_finite() or value <= 0:
            raise LedgerValidationError(f"{field} must be greater than 0")
        return value

    def clamp_date(self, value: Optional[date]) -> date:
        """
        Today's date if `value` is missing or after today, otherwise `value`.

        This is a correction, not a rejection.
        """
        today = self.today()
        if value is None:
            return today
        if value > today:
            logger.warning(
                "future_date_corrected",
                requested=value.isoformat(),
                applied=today.isoformat(),
            )
            return today
        return value

    def check_goal_income_only(self, kind: TransactionKind, goal_id: Optional[str]) -> None:
        if goal_id and kind != TransactionKind.INCOME:
            raise LedgerValidationError("Goals can only receive income transactions")

    def check_distinct_pockets(self, from_pocket_id: str, to_pocket_id: str) -> None:
        if from_pocket_id == to_pocket_id:
            raise LedgerValidationError("Source and target pocket must differ")

    def check_sufficiency(
        self,
        transactions: Iterable[Transaction],
        pocket_id: str,
        amount: Amount,
    ) -> Decimal:
        """
        Reject an expense larger than the pocket's projected balance.

        Returns:
            The current balance the check was made against

        Raises:
            InsufficientBalanceError: carrying current and requested amounts
        """
        requested = self.check_positive(amount)
        current = pocket_balance(transactions, pocket_id)
        if requested > current:
            raise InsufficientBalanceError(current=current, requested=requested)
        return current

    def check_goal_withdrawal(
        self,
        transactions: Iterable[Transaction],
        goal_id: str,
        amount: Amount,
    ) -> Decimal:
        """
        Reject a withdrawal larger than the goal's available balance.

        Uses the complete goal fold (income + allocations - withdrawals),
        never the income-only display metric.
        """
        requested = self.check_positive(amount)
        current = goal_available_balance(transactions, goal_id)
        if requested > current:
            raise GoalBalanceExceededError(goal_id=goal_id, current=current, requested=requested)
        return current
