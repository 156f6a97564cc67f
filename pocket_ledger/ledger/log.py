"""
Transaction Log

The authoritative collection of transaction records. Everything else
in the ledger is derived from it.

DESIGN DECISION: The log is a dumb, reliable store. It checks record
shape (through the pydantic model) and id uniqueness, never business
rules. Those belong to the guard and the mutators.

Every mutation builds the complete new sequence and commits it with a
single `save_all` call. The in-memory view is replaced only after the
commit succeeds, so a failed write never leaves a half-applied batch.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional
from uuid import UUID

import structlog

from pocket_ledger.models.transaction import Transaction
from pocket_ledger.services.storage import (
    DuplicateError,
    NotFoundError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)

IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


class TransactionLog:
    """Ordered, append-mostly sequence of transactions over a storage backend."""

    def __init__(self, storage: TransactionStorageInterface):
        self._storage = storage
        self._records: Optional[list[Transaction]] = None

    def _current(self) -> list[Transaction]:
        if self._records is None:
            self._records = list(self._storage.load())
            logger.debug("transaction_log_loaded", count=len(self._records))
        return self._records

    def _commit(self, records: list[Transaction]) -> None:
        self._storage.save_all(records)
        self._records = records

    def reload(self) -> None:
        """Drop the in-memory view; the next read loads from storage."""
        self._records = None

    def all(self) -> list[Transaction]:
        """All records in storage order."""
        return list(self._current())

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._current())

    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        for record in self._current():
            if record.id == transaction_id:
                return record
        return None

    def append(self, record: Transaction) -> Transaction:
        """
        Append one record.

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If the commit fails
        """
        records = self._current()
        if any(r.id == record.id for r in records):
            raise DuplicateError(f"Transaction already exists: {record.id}")
        self._commit(records + [record])
        return record

    def update(self, transaction_id: UUID, changes: dict[str, Any]) -> Transaction:
        """
        Replace a record with a copy carrying `changes`.

        `id` and `created_at` are preserved; `updated_at` is refreshed.

        Raises:
            NotFoundError: If the id is unknown
        """
        records = self._current()
        for index, existing in enumerate(records):
            if existing.id != transaction_id:
                continue

            data = existing.model_dump()
            data.update({k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS})
            data["updated_at"] = datetime.now(timezone.utc)
            updated = Transaction.model_validate(data)

            new_records = list(records)
            new_records[index] = updated
            self._commit(new_records)
            return updated

        raise NotFoundError(f"Transaction not found: {transaction_id}")

    def remove(self, transaction_id: UUID) -> None:
        """
        Remove a record.

        Raises:
            NotFoundError: If the id is unknown
        """
        records = self._current()
        remaining = [r for r in records if r.id != transaction_id]
        if len(remaining) == len(records):
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        self._commit(remaining)

    def apply_batch(
        self,
        deletions: Iterable[UUID],
        insertions: Iterable[Transaction],
    ) -> None:
        """
        Delete and insert records in one commit.

        Insertions are appended after the surviving records.

        Raises:
            NotFoundError: If a deletion names an unknown id
            DuplicateError: If an insertion reuses a surviving id
            StorageError: If the commit fails (nothing is applied)
        """
        records = self._current()
        to_delete = set(deletions)
        to_insert = list(insertions)

        known = {r.id for r in records}
        missing = to_delete - known
        if missing:
            raise NotFoundError(
                f"Transactions not found: {', '.join(sorted(str(m) for m in missing))}"
            )

        survivors = [r for r in records if r.id not in to_delete]
        surviving_ids = {r.id for r in survivors}
        for record in to_insert:
            if record.id in surviving_ids:
                raise DuplicateError(f"Transaction already exists: {record.id}")
            surviving_ids.add(record.id)

        self._commit(survivors + to_insert)
        logger.info(
            "transaction_batch_applied",
            deleted=len(to_delete),
            inserted=len(to_insert),
        )
