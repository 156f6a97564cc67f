"""
In-Memory Storage

Process-local implementations of the storage interfaces.
Used by tests and as the default backend for a throwaway session.
"""

from typing import Optional, Sequence
from uuid import UUID

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.catalog import Goal, InvestmentActivityEntry, Pocket
from pocket_ledger.models.transaction import Transaction
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    CatalogStorageInterface,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Keeps the log in a list. Counts writes so tests can assert on commits."""

    def __init__(self, transactions: Optional[Sequence[Transaction]] = None):
        self._transactions: list[Transaction] = list(transactions or [])
        self.save_count = 0

    def load(self) -> list[Transaction]:
        return list(self._transactions)

    def save_all(self, transactions: Sequence[Transaction]) -> None:
        self._transactions = list(transactions)
        self.save_count += 1


class InMemoryCatalogStorage(CatalogStorageInterface):
    def __init__(self):
        self._pockets: list[Pocket] = []
        self._goals: list[Goal] = []
        self._activity: dict[str, list[InvestmentActivityEntry]] = {}

    def load_pockets(self) -> list[Pocket]:
        return [p.model_copy() for p in self._pockets]

    def save_pockets(self, pockets: Sequence[Pocket]) -> None:
        self._pockets = [p.model_copy() for p in pockets]

    def load_goals(self) -> list[Goal]:
        return [g.model_copy() for g in self._goals]

    def save_goals(self, goals: Sequence[Goal]) -> None:
        self._goals = [g.model_copy() for g in goals]

    def load_activity(self) -> dict[str, list[InvestmentActivityEntry]]:
        return {goal_id: list(entries) for goal_id, entries in self._activity.items()}

    def save_activity(
        self,
        activity: dict[str, list[InvestmentActivityEntry]],
    ) -> None:
        self._activity = {goal_id: list(entries) for goal_id, entries in activity.items()}


class InMemoryAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
