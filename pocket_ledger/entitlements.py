"""
Plan limits for pockets and goals.

The ledger enforces no limits itself. The catalog asks an optional gate
`(current_count) -> bool` before creating a pocket or goal; this module
builds those gates from the configured plan.

Basic: 2 pockets (main included), 1 goal. Premium: unlimited.
"""

from typing import Callable, Optional

from pocket_ledger.config.settings import AppSettings


Gate = Callable[[int], bool]

BASIC = "basic"
PREMIUM = "premium"


def plan_name(premium: bool) -> str:
    return PREMIUM if premium else BASIC


def max_pockets(premium: bool, basic_limit: int = 2) -> Optional[int]:
    """Pocket limit for the plan; None means unlimited."""
    return None if premium else basic_limit


def max_goals(premium: bool, basic_limit: int = 1) -> Optional[int]:
    """Goal limit for the plan; None means unlimited."""
    return None if premium else basic_limit


def can_add_pocket(premium: bool, current_count: int, basic_limit: int = 2) -> bool:
    limit = max_pockets(premium, basic_limit)
    return limit is None or current_count < limit


def can_add_goal(premium: bool, current_count: int, basic_limit: int = 1) -> bool:
    limit = max_goals(premium, basic_limit)
    return limit is None or current_count < limit


def pocket_gate(settings: AppSettings) -> Gate:
    """Gate for PocketCatalog built from the app settings."""
    def gate(current_count: int) -> bool:
        return can_add_pocket(settings.premium, current_count, settings.basic_max_pockets)
    return gate


def goal_gate(settings: AppSettings) -> Gate:
    """Gate for GoalCatalog built from the app settings."""
    def gate(current_count: int) -> bool:
        return can_add_goal(settings.premium, current_count, settings.basic_max_goals)
    return gate
