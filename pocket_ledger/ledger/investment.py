"""
Investment Goal Simulation

Investment goals grow by a simulated daily return on top of the money
actually put into them. The simulated return is never a transaction:
it lives in a separate activity list per goal so the ledger's
projections stay a pure function of real money movements.

Timeline rules:
- income tagged with the goal and allocations into it are deposits
- withdrawals drain principal first, then simulated return (floored at 0)
- each activity entry adds to simulated return
Events are processed in date order.
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple
from uuid import uuid4

from pocket_ledger.ledger.projections import ZERO
from pocket_ledger.models.catalog import Goal, GoalKind, InvestmentActivityEntry
from pocket_ledger.models.transaction import Transaction, TransactionKind


DAILY_RETURN_LABEL = "Daily Investment Return"
DAYS_PER_YEAR = Decimal("365")

_DEPOSIT = "deposit"
_WITHDRAWAL = "withdrawal"
_DAILY_RETURN = "daily_return"


class InvestmentState(NamedTuple):
    principal: Decimal
    simulated_return: Decimal

    @property
    def total(self) -> Decimal:
        return self.principal + self.simulated_return


class SimulationResult(NamedTuple):
    entries: list[InvestmentActivityEntry]
    last_date: dt.date

    @property
    def total_added(self) -> Decimal:
        return sum((e.amount for e in self.entries), ZERO)


def _goal_events(
    goal_id: str,
    transactions: Iterable[Transaction],
    activity: Iterable[InvestmentActivityEntry],
) -> list[tuple[dt.date, str, Decimal]]:
    events = []
    for tx in transactions:
        if tx.kind == TransactionKind.INCOME and tx.goal_id == goal_id:
            events.append((tx.date, _DEPOSIT, tx.amount))
        elif tx.kind == TransactionKind.TRANSFER:
            if tx.transfer_to_goal_id == goal_id:
                events.append((tx.date, _DEPOSIT, tx.amount))
            elif tx.goal_id == goal_id and tx.transfer_to_pocket_id:
                events.append((tx.date, _WITHDRAWAL, tx.amount))

    for entry in activity:
        events.append((entry.date, _DAILY_RETURN, entry.amount))

    # Stable on date only, same-day events keep their log order
    events.sort(key=lambda e: e[0])
    return events


def compute_investment_state(
    goal_id: str,
    transactions: Iterable[Transaction],
    activity: Iterable[InvestmentActivityEntry],
) -> InvestmentState:
    """Split what a goal holds into real principal and simulated return."""
    principal = ZERO
    simulated = ZERO

    for _, event_type, amount in _goal_events(goal_id, transactions, activity):
        if event_type == _DEPOSIT:
            principal += amount
        elif event_type == _DAILY_RETURN:
            simulated += amount
        else:
            from_principal = min(amount, principal)
            principal -= from_principal
            simulated = max(ZERO, simulated - (amount - from_principal))

    return InvestmentState(principal=principal, simulated_return=simulated)


def daily_rate(annual_return_percentage: Decimal) -> Decimal:
    """Daily rate = annual % / 100 / 365 (simple, not compounded)."""
    return Decimal(annual_return_percentage) / Decimal("100") / DAYS_PER_YEAR


def simulate_daily_returns(
    goal: Goal,
    transactions: Iterable[Transaction],
    activity: Iterable[InvestmentActivityEntry],
    today: dt.date,
) -> SimulationResult:
    """
    Simulate returns from the day after the last calculation through today.

    Only activity up to the last calculation date counts towards the
    starting balance. Growth for a day is the current balance times the
    daily rate, rounded to a whole unit; days with no growth produce no
    entry but still advance the last calculation date.

    Returns:
        SimulationResult with the new entries (not persisted) and the
        date the goal should record as its last calculation
    """
    last = goal.last_return_calculation_date or goal.created_at.date()

    if goal.kind != GoalKind.INVESTMENT or goal.annual_return_percentage is None:
        return SimulationResult(entries=[], last_date=last)

    rate = daily_rate(goal.annual_return_percentage)
    if rate <= 0:
        return SimulationResult(entries=[], last_date=last)

    prior = [a for a in activity if a.date <= last]
    state = compute_investment_state(goal.id, transactions, prior)
    balance = state.total

    entries: list[InvestmentActivityEntry] = []
    current = last + dt.timedelta(days=1)
    last_date = last
    while current <= today:
        growth = (balance * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        if growth > 0:
            entries.append(
                InvestmentActivityEntry(
                    id=f"inv-{uuid4().hex[:12]}",
                    goal_id=goal.id,
                    date=current,
                    amount=growth,
                    label=DAILY_RETURN_LABEL,
                )
            )
            balance += growth
        last_date = current
        current += dt.timedelta(days=1)

    return SimulationResult(entries=entries, last_date=last_date)
