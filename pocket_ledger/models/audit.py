"""
Audit Models for Pocket Ledger

Every balance-affecting action in the ledger is logged for audit purposes.
This provides:
1. Traceability of how a balance came to be
2. Debugging information when things go wrong
3. A record of compensating entries created on pocket deletion

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocket_ledger.models.transaction import Transaction, TransactionKind
from pocket_ledger.utils.currency import format_idr


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entries
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSFER_RECORDED = "transfer_recorded"
    DATE_CLAMPED = "date_clamped"

    # Rejections
    VALIDATION_FAILED = "validation_failed"
    INSUFFICIENT_BALANCE = "insufficient_balance"

    # Catalog
    POCKET_DELETED = "pocket_deleted"
    GOAL_DELETED = "goal_deleted"

    # Investment simulation
    INVESTMENT_RETURN_APPLIED = "investment_return_applied"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'pocket', 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one pocket deletion)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(tx, correlation_id)
        event = AuditEventBuilder.pocket_deleted(pocket_id, name, ...)
    """

    @staticmethod
    def transaction_recorded(
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        is_transfer = transaction.kind == TransactionKind.TRANSFER
        variant = transaction.transfer_variant
        return AuditEvent(
            event_type=(
                AuditEventType.TRANSFER_RECORDED
                if is_transfer
                else AuditEventType.TRANSACTION_RECORDED
            ),
            entity_type="transaction",
            entity_id=str(transaction.id),
            correlation_id=correlation_id,
            description=(
                f"{(variant.value if variant else transaction.kind.value).replace('_', ' ').capitalize()} "
                f"recorded: {format_idr(transaction.amount)}"
            ),
            details={
                "kind": transaction.kind.value,
                "variant": variant.value if variant else None,
                "amount": str(transaction.amount),
                "pocket_id": transaction.pocket_id,
                "transfer_to_pocket_id": transaction.transfer_to_pocket_id,
                "goal_id": transaction.goal_id,
                "transfer_to_goal_id": transaction.transfer_to_goal_id,
                "origin": transaction.origin.value,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction: Transaction,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=str(transaction.id),
            correlation_id=correlation_id,
            description=f"Transaction updated: {', '.join(changed_fields) or 'no fields'}",
            details={
                "changed_fields": changed_fields,
                "amount": str(transaction.amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def date_clamped(
        requested: str,
        applied: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATE_CLAMPED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Future date corrected: {requested} -> {applied}",
            details={
                "requested": requested,
                "applied": applied,
            },
        )

    @staticmethod
    def validation_failed(
        operation: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected",
            error_message=message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def insufficient_balance(
        entity_type: str,
        entity_id: str,
        current: str,
        requested: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSUFFICIENT_BALANCE,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Insufficient {entity_type} balance",
            details={
                "current": current,
                "requested": requested,
            },
        )

    @staticmethod
    def pocket_deleted(
        pocket_id: str,
        pocket_name: str,
        deleted_count: int,
        inserted_count: int,
        discarded_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POCKET_DELETED,
            entity_type="pocket",
            entity_id=pocket_id,
            correlation_id=correlation_id,
            description=(
                f"Pocket deleted: {pocket_name} "
                f"({deleted_count} removed, {inserted_count} compensating entries)"
            ),
            details={
                "deleted_count": deleted_count,
                "inserted_count": inserted_count,
                "discarded_amount": discarded_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_deleted(
        goal_id: str,
        goal_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DELETED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal deleted: {goal_name}",
            is_user_action=True,
        )

    @staticmethod
    def investment_return_applied(
        goal_id: str,
        total: str,
        days: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_RETURN_APPLIED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Simulated return applied over {days} day(s)",
            details={
                "total": total,
                "days": days,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
