"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap local files for a remote spreadsheet (or a real database later)
2. Use in-memory storage for testing
3. Keep the ledger algorithms decoupled from storage transport

The transaction contract is deliberately tiny: load everything, save
everything. Every ledger mutation is committed as one `save_all` call,
which is what makes a reconciliation batch all-or-nothing.
"""

from abc import ABC, abstractmethod
from typing import Sequence
from uuid import UUID

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.catalog import Goal, InvestmentActivityEntry, Pocket
from pocket_ledger.models.transaction import Transaction


class TransactionStorageInterface(ABC):
    """
    Persistence boundary for the transaction log.

    Any storage implementation (JSON file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def load(self) -> list[Transaction]:
        """
        Load every stored transaction in storage order.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save_all(self, transactions: Sequence[Transaction]) -> None:
        """
        Replace the stored log with the given sequence.

        Implementations must either store the whole sequence or raise;
        the ledger never retries on its own.

        Raises:
            StorageError: If the write fails
        """
        pass


class CatalogStorageInterface(ABC):
    """Persistence for pockets, goals and simulated investment activity."""

    @abstractmethod
    def load_pockets(self) -> list[Pocket]:
        pass

    @abstractmethod
    def save_pockets(self, pockets: Sequence[Pocket]) -> None:
        pass

    @abstractmethod
    def load_goals(self) -> list[Goal]:
        pass

    @abstractmethod
    def save_goals(self, goals: Sequence[Goal]) -> None:
        pass

    @abstractmethod
    def load_activity(self) -> dict[str, list[InvestmentActivityEntry]]:
        """Investment activity entries keyed by goal id."""
        pass

    @abstractmethod
    def save_activity(
        self,
        activity: dict[str, list[InvestmentActivityEntry]],
    ) -> None:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
