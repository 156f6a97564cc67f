"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
In-memory, local JSON files and Google Sheets are interchangeable backends.
"""

from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    CatalogStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from pocket_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCatalogStorage,
    InMemoryTransactionStorage,
)
from pocket_ledger.services.storage.json_file import (
    JsonFileCatalogStorage,
    JsonFileTransactionStorage,
)
from pocket_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CatalogStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCatalogStorage",
    "InMemoryTransactionStorage",
    # JSON file implementation
    "JsonFileCatalogStorage",
    "JsonFileTransactionStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
