"""Services package."""

from pocket_ledger.services.storage import (
    AuditStorageInterface,
    CatalogStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryCatalogStorage,
    InMemoryTransactionStorage,
    JsonFileCatalogStorage,
    JsonFileTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "CatalogStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryCatalogStorage",
    "InMemoryTransactionStorage",
    "JsonFileCatalogStorage",
    "JsonFileTransactionStorage",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
]
