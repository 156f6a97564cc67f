"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the ledger must conform to these schemas.
"""

from pocket_ledger.models.transaction import (
    CategoryTotal,
    EntryOrigin,
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionSummary,
    TransferVariant,
)
from pocket_ledger.models.catalog import (
    DEFAULT_POCKET_COLOR,
    MAIN_POCKET_ID,
    Goal,
    GoalKind,
    InvestmentActivityEntry,
    Pocket,
    PocketKind,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "CategoryTotal",
    "EntryOrigin",
    "Transaction",
    "TransactionDraft",
    "TransactionKind",
    "TransactionSummary",
    "TransferVariant",
    # Catalog models
    "DEFAULT_POCKET_COLOR",
    "MAIN_POCKET_ID",
    "Goal",
    "GoalKind",
    "InvestmentActivityEntry",
    "Pocket",
    "PocketKind",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
