"""
Pocket & Goal Catalog

Create, rename, recolor and delete pockets and goals.

DESIGN DECISION: The catalog only manages names and settings. It never
touches the transaction log, so removing a pocket here does NOT
reconcile its entries. Use LedgerService.delete_pocket, which plans and
applies the reconciliation before removing the catalog entry.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import uuid4

import structlog

from pocket_ledger.ledger.errors import LedgerValidationError, PlanLimitReachedError
from pocket_ledger.models.catalog import (
    DEFAULT_GOAL_ICON,
    DEFAULT_POCKET_COLOR,
    DEFAULT_POCKET_ICON,
    MAIN_POCKET_ID,
    Goal,
    GoalKind,
    InvestmentActivityEntry,
    Pocket,
    PocketKind,
)
from pocket_ledger.services.storage import CatalogStorageInterface, NotFoundError


logger = structlog.get_logger(__name__)

MAIN_POCKET_NAME = "Main Pocket"
MAIN_POCKET_ICON = "💰"


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


# =============================================================================
# POCKETS
# =============================================================================

class PocketCatalog:
    """Pocket metadata over a catalog storage backend."""

    def __init__(
        self,
        storage: CatalogStorageInterface,
        may_create_pocket: Optional[Callable[[int], bool]] = None,
    ):
        self._storage = storage
        self._may_create = may_create_pocket

    def ensure_main_pocket(self) -> Pocket:
        """Return the main pocket, creating it first if it is missing."""
        pockets = self._storage.load_pockets()
        for pocket in pockets:
            if pocket.is_main:
                return pocket

        main = Pocket(
            id=MAIN_POCKET_ID,
            name=MAIN_POCKET_NAME,
            icon=MAIN_POCKET_ICON,
            kind=PocketKind.MAIN,
        )
        self._storage.save_pockets([main] + pockets)
        logger.info("main_pocket_created", pocket_id=main.id)
        return main

    def list_pockets(self) -> list[Pocket]:
        """Main pocket first, then the rest by creation time."""
        pockets = self._storage.load_pockets()
        main = [p for p in pockets if p.is_main]
        rest = sorted((p for p in pockets if not p.is_main), key=lambda p: p.created_at)
        return main[:1] + rest

    def get_pocket(self, pocket_id: str) -> Optional[Pocket]:
        for pocket in self._storage.load_pockets():
            if pocket.id == pocket_id:
                return pocket
        return None

    def create_pocket(
        self,
        name: str,
        kind: PocketKind = PocketKind.SPENDING,
        icon: str = "",
        color: str = "",
    ) -> Pocket:
        """
        Create a pocket.

        Raises:
            LedgerValidationError: If `kind` is MAIN
            PlanLimitReachedError: If the entitlement gate refuses
        """
        if kind == PocketKind.MAIN:
            raise LedgerValidationError("There can only be one main pocket")

        pockets = self._storage.load_pockets()
        if self._may_create is not None and not self._may_create(len(pockets)):
            raise PlanLimitReachedError(
                f"Pocket limit reached ({len(pockets)} pockets). Upgrade to add more."
            )

        pocket = Pocket(
            id=_new_id("pocket"),
            name=name.strip() or "Unnamed",
            icon=icon or DEFAULT_POCKET_ICON,
            color=color or DEFAULT_POCKET_COLOR,
            kind=kind,
        )
        self._storage.save_pockets(pockets + [pocket])
        logger.info("pocket_created", pocket_id=pocket.id, kind=pocket.kind.value)
        return pocket

    def update_pocket(
        self,
        pocket_id: str,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        kind: Optional[PocketKind] = None,
    ) -> Pocket:
        """
        Rename, re-icon, recolor or re-kind a pocket.

        Blank names and icons keep the current value; a blank color
        resets to the default.

        Raises:
            NotFoundError: If the pocket does not exist
            LedgerValidationError: If the main pocket's kind would change
        """
        pockets = self._storage.load_pockets()
        for index, current in enumerate(pockets):
            if current.id != pocket_id:
                continue

            if current.is_main and kind is not None and kind != PocketKind.MAIN:
                raise LedgerValidationError("Cannot change Main Pocket type")
            if not current.is_main and kind == PocketKind.MAIN:
                raise LedgerValidationError("There can only be one main pocket")

            changes: dict[str, Any] = {}
            if name is not None:
                changes["name"] = name.strip() or current.name
            if icon is not None:
                changes["icon"] = icon or current.icon
            if color is not None:
                changes["color"] = color or DEFAULT_POCKET_COLOR
            if kind is not None:
                changes["kind"] = kind

            updated = current.model_copy(update=changes)
            pockets[index] = updated
            self._storage.save_pockets(pockets)
            return updated

        raise NotFoundError(f"Pocket not found: {pocket_id}")

    def remove_pocket(self, pocket_id: str) -> Pocket:
        """
        Drop a pocket from the catalog (no reconciliation).

        Raises:
            LedgerValidationError: For the main pocket
            NotFoundError: If the pocket does not exist
        """
        pockets = self._storage.load_pockets()
        target = next((p for p in pockets if p.id == pocket_id), None)
        if target is None:
            raise NotFoundError(f"Pocket not found: {pocket_id}")
        if target.is_main:
            raise LedgerValidationError("Cannot delete Main Pocket")

        self._storage.save_pockets([p for p in pockets if p.id != pocket_id])
        return target


# =============================================================================
# GOALS
# =============================================================================

class GoalCatalog:
    """Goal metadata plus the simulated investment activity of each goal."""

    def __init__(
        self,
        storage: CatalogStorageInterface,
        may_create_goal: Optional[Callable[[int], bool]] = None,
    ):
        self._storage = storage
        self._may_create = may_create_goal

    def list_goals(self) -> list[Goal]:
        return self._storage.load_goals()

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        for goal in self._storage.load_goals():
            if goal.id == goal_id:
                return goal
        return None

    def create_goal(
        self,
        name: str,
        target_amount: Decimal,
        duration_months: int,
        kind: GoalKind = GoalKind.SAVING,
        annual_return_percentage: Optional[Decimal] = None,
        icon: str = "",
        color: str = "",
        today: Optional[dt.date] = None,
    ) -> Goal:
        """
        Create a goal.

        Investment goals start their return simulation from `today`.

        Raises:
            PlanLimitReachedError: If the entitlement gate refuses
        """
        goals = self._storage.load_goals()
        if self._may_create is not None and not self._may_create(len(goals)):
            raise PlanLimitReachedError(
                f"Goal limit reached ({len(goals)} goals). Upgrade to add more."
            )

        is_investment = kind == GoalKind.INVESTMENT
        goal = Goal(
            id=_new_id("goal"),
            name=name.strip() or "Unnamed Goal",
            icon=icon or DEFAULT_GOAL_ICON,
            color=color or DEFAULT_POCKET_COLOR,
            target_amount=target_amount,
            duration_months=duration_months,
            kind=kind,
            annual_return_percentage=annual_return_percentage if is_investment else None,
            last_return_calculation_date=(today or dt.date.today()) if is_investment else None,
        )
        self._storage.save_goals(goals + [goal])
        logger.info("goal_created", goal_id=goal.id, kind=goal.kind.value)
        return goal

    def update_goal(self, goal_id: str, **changes: Any) -> Goal:
        """
        Update goal settings.

        Accepts name, icon, color, target_amount, duration_months,
        annual_return_percentage and last_return_calculation_date.

        Raises:
            NotFoundError: If the goal does not exist
        """
        allowed = {
            "name", "icon", "color", "target_amount", "duration_months",
            "annual_return_percentage", "last_return_calculation_date",
        }
        unknown = set(changes) - allowed
        if unknown:
            raise LedgerValidationError(f"Cannot update goal fields: {', '.join(sorted(unknown))}")

        goals = self._storage.load_goals()
        for index, current in enumerate(goals):
            if current.id != goal_id:
                continue

            data = current.model_dump()
            if "name" in changes:
                data["name"] = (changes.pop("name") or "").strip() or current.name
            if "icon" in changes:
                data["icon"] = changes.pop("icon") or current.icon
            if "color" in changes:
                data["color"] = changes.pop("color") or DEFAULT_POCKET_COLOR
            data.update(changes)

            updated = Goal.model_validate(data)
            goals[index] = updated
            self._storage.save_goals(goals)
            return updated

        raise NotFoundError(f"Goal not found: {goal_id}")

    def set_last_return_date(self, goal_id: str, value: dt.date) -> Goal:
        return self.update_goal(goal_id, last_return_calculation_date=value)

    def remove_goal(self, goal_id: str) -> Goal:
        """
        Drop a goal and its investment activity.

        Raises:
            NotFoundError: If the goal does not exist
        """
        goals = self._storage.load_goals()
        target = next((g for g in goals if g.id == goal_id), None)
        if target is None:
            raise NotFoundError(f"Goal not found: {goal_id}")

        self._storage.save_goals([g for g in goals if g.id != goal_id])

        activity = self._storage.load_activity()
        if activity.pop(goal_id, None) is not None:
            self._storage.save_activity(activity)
        return target

    def activity_for(self, goal_id: str) -> list[InvestmentActivityEntry]:
        """Investment activity of a goal, newest first."""
        entries = self._storage.load_activity().get(goal_id, [])
        return sorted(entries, key=lambda e: e.date, reverse=True)

    def append_activity(self, goal_id: str, entries: list[InvestmentActivityEntry]) -> None:
        if not entries:
            return
        activity = self._storage.load_activity()
        activity.setdefault(goal_id, []).extend(entries)
        self._storage.save_activity(activity)
