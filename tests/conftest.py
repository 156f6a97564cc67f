"""Shared fixtures for the ledger tests."""

from datetime import date

import pytest

from pocket_ledger.audit import AuditLogger
from pocket_ledger.catalog import GoalCatalog, PocketCatalog
from pocket_ledger.ledger.log import TransactionLog
from pocket_ledger.orchestrator import LedgerService
from pocket_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryCatalogStorage,
    InMemoryTransactionStorage,
)
from pocket_ledger.validation import LedgerGuard


TODAY = date(2024, 6, 15)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def guard() -> LedgerGuard:
    return LedgerGuard(today=lambda: TODAY)


@pytest.fixture
def storage() -> InMemoryTransactionStorage:
    return InMemoryTransactionStorage()


@pytest.fixture
def log(storage) -> TransactionLog:
    return TransactionLog(storage)


@pytest.fixture
def catalog_storage() -> InMemoryCatalogStorage:
    return InMemoryCatalogStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def service(log, catalog_storage, audit_storage, guard) -> LedgerService:
    service = LedgerService(
        log=log,
        pockets=PocketCatalog(catalog_storage),
        goals=GoalCatalog(catalog_storage),
        guard=guard,
        audit_logger=AuditLogger(audit_storage),
    )
    service.pockets.ensure_main_pocket()
    return service
