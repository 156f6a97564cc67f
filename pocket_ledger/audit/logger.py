"""
Audit Logger

DESIGN DECISION: Every balance-affecting action in the ledger is logged.
This provides:
1. Traceability of every entry, transfer and reconciliation
2. Debugging capability
3. A user-visible history of compensating entries

The audit logger:
- Is synchronous, like the ledger itself
- Gracefully handles failures (doesn't break a committed mutation if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocket_ledger.models.transaction import Transaction
from pocket_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocket_ledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_transaction_recorded(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new income, expense or transfer entry."""
        self.log(AuditEventBuilder.transaction_recorded(
            transaction=transaction,
            correlation_id=correlation_id,
        ))

    def log_transaction_updated(
        self,
        transaction: Transaction,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_updated(
            transaction=transaction,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    def log_date_clamped(
        self,
        requested: str,
        applied: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a silent future-date correction."""
        self.log(AuditEventBuilder.date_clamped(
            requested=requested,
            applied=applied,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        operation: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            message=message,
            correlation_id=correlation_id,
        ))

    def log_insufficient_balance(
        self,
        entity_type: str,
        entity_id: str,
        current: str,
        requested: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.insufficient_balance(
            entity_type=entity_type,
            entity_id=entity_id,
            current=current,
            requested=requested,
            correlation_id=correlation_id,
        ))

    def log_pocket_deleted(
        self,
        pocket_id: str,
        pocket_name: str,
        deleted_count: int,
        inserted_count: int,
        discarded_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a pocket deletion and its reconciliation batch."""
        self.log(AuditEventBuilder.pocket_deleted(
            pocket_id=pocket_id,
            pocket_name=pocket_name,
            deleted_count=deleted_count,
            inserted_count=inserted_count,
            discarded_amount=discarded_amount,
            correlation_id=correlation_id,
        ))

    def log_goal_deleted(
        self,
        goal_id: str,
        goal_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.goal_deleted(
            goal_id=goal_id,
            goal_name=goal_name,
            correlation_id=correlation_id,
        ))

    def log_investment_return(
        self,
        goal_id: str,
        total: str,
        days: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.investment_return_applied(
            goal_id=goal_id,
            total=total,
            days=days,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed commit to the persistence boundary."""
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., deleting a pocket).
    Pass it through all subsequent operations.
    """
    return uuid4()
