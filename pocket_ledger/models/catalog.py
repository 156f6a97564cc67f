"""
Pocket and Goal Models

Pockets and goals are named containers. Neither stores a balance:
balances are projections of the transaction log.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocket_ledger.models.transaction import utc_now


MAIN_POCKET_ID = "main-pocket"
DEFAULT_POCKET_COLOR = "#e2e8f0"
DEFAULT_POCKET_ICON = "📦"
DEFAULT_GOAL_ICON = "🎯"


class PocketKind(str, Enum):
    """
    Pocket kinds.

    Exactly one pocket is MAIN and it can never be deleted.
    """
    MAIN = "main"
    SPENDING = "spending"
    SAVING = "saving"
    INVESTMENT = "investment"


class GoalKind(str, Enum):
    """Goal kinds. Only INVESTMENT goals simulate returns."""
    SAVING = "saving"
    INVESTMENT = "investment"


class Pocket(BaseModel):
    """A named bucket of spendable money."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = DEFAULT_POCKET_ICON
    color: str = DEFAULT_POCKET_COLOR
    kind: PocketKind = PocketKind.SPENDING
    created_at: dt.datetime = Field(default_factory=utc_now)

    @property
    def is_main(self) -> bool:
        return self.kind == PocketKind.MAIN or self.id == MAIN_POCKET_ID


class Goal(BaseModel):
    """
    A savings or investment target.

    Money reaches a goal through income tagged with the goal
    or through an allocation transfer from a pocket.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = DEFAULT_GOAL_ICON
    color: str = DEFAULT_POCKET_COLOR
    target_amount: Decimal = Field(..., gt=0)
    duration_months: int = Field(..., ge=1)
    kind: GoalKind = GoalKind.SAVING
    annual_return_percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Estimated annual return, investment goals only"
    )
    last_return_calculation_date: Optional[dt.date] = Field(
        default=None,
        description="Last day a simulated return was applied"
    )
    created_at: dt.datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_return_settings(self) -> 'Goal':
        if self.kind == GoalKind.SAVING and self.annual_return_percentage is not None:
            raise ValueError("Only investment goals can have an annual return")
        return self


class InvestmentActivityEntry(BaseModel):
    """Read-only record of one simulated daily return."""

    id: str = Field(..., min_length=1)
    goal_id: str = Field(..., min_length=1)
    date: dt.date
    amount: Decimal = Field(..., gt=0)
    label: str = "Daily Investment Return"
