"""
Ledger exceptions.

Every rejection is raised before the log is touched, so a caller
catching one of these can rely on the log being unchanged.
Storage failures are not wrapped here; they surface as StorageError.
"""

from decimal import Decimal

from pocket_ledger.utils.currency import format_idr


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerValidationError(LedgerError):
    """
    A request that can never succeed as given.

    Non-positive amounts, same-pocket transfers, non-income entries
    aimed at a goal, attempts to delete the main pocket.
    """
    pass


class InsufficientBalanceError(LedgerError):
    """An expense or withdrawal larger than the available balance."""

    def __init__(self, current: Decimal, requested: Decimal, message: str = ""):
        self.current = current
        self.requested = requested
        super().__init__(
            message
            or f"Insufficient balance: {format_idr(current)} available, "
               f"{format_idr(requested)} requested"
        )


class GoalBalanceExceededError(InsufficientBalanceError):
    """A withdrawal larger than what the goal currently holds."""

    def __init__(self, goal_id: str, current: Decimal, requested: Decimal):
        self.goal_id = goal_id
        super().__init__(
            current,
            requested,
            f"Withdrawal amount exceeds goal balance: {format_idr(current)} available, "
            f"{format_idr(requested)} requested",
        )


class PlanLimitReachedError(LedgerError):
    """The entitlement gate refused another pocket or goal."""
    pass
