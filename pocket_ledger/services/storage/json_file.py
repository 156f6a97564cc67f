"""
JSON File Storage

Local-device storage: the transaction log and the catalog live in JSON
files under one data directory.

Writes go to a temporary file in the same directory that is then renamed
over the target, so a crash mid-write leaves the previous file intact.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Sequence, Union

import structlog
from pydantic import ValidationError

from pocket_ledger.models.catalog import Goal, InvestmentActivityEntry, Pocket
from pocket_ledger.models.transaction import Transaction
from pocket_ledger.services.storage.interface import (
    CatalogStorageInterface,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)

TRANSACTIONS_FILE = "transactions.json"
POCKETS_FILE = "pockets.json"
GOALS_FILE = "goals.json"
ACTIVITY_FILE = "goal_investment_activity.json"


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Failed to read {path}: {e}")


def _write_json_atomic(path: Path, payload: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}")


class JsonFileTransactionStorage(TransactionStorageInterface):
    """Transaction log stored as a JSON array."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Transaction]:
        raw = _read_json(self._path, [])
        if not isinstance(raw, list):
            raise StorageError(f"Expected a JSON array in {self._path}")
        try:
            return [Transaction.model_validate(item) for item in raw]
        except ValidationError as e:
            raise StorageError(f"Malformed transaction in {self._path}: {e}")

    def save_all(self, transactions: Sequence[Transaction]) -> None:
        payload = [tx.model_dump(mode="json") for tx in transactions]
        _write_json_atomic(self._path, payload)
        logger.debug("transactions_saved", path=str(self._path), count=len(payload))


class JsonFileCatalogStorage(CatalogStorageInterface):
    """Pockets, goals and investment activity, one file each."""

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)

    def _load_list(self, filename: str, model: type) -> list:
        path = self._directory / filename
        raw = _read_json(path, [])
        if not isinstance(raw, list):
            raise StorageError(f"Expected a JSON array in {path}")
        try:
            return [model.model_validate(item) for item in raw]
        except ValidationError as e:
            raise StorageError(f"Malformed record in {path}: {e}")

    def load_pockets(self) -> list[Pocket]:
        return self._load_list(POCKETS_FILE, Pocket)

    def save_pockets(self, pockets: Sequence[Pocket]) -> None:
        _write_json_atomic(
            self._directory / POCKETS_FILE,
            [p.model_dump(mode="json") for p in pockets],
        )

    def load_goals(self) -> list[Goal]:
        return self._load_list(GOALS_FILE, Goal)

    def save_goals(self, goals: Sequence[Goal]) -> None:
        _write_json_atomic(
            self._directory / GOALS_FILE,
            [g.model_dump(mode="json") for g in goals],
        )

    def load_activity(self) -> dict[str, list[InvestmentActivityEntry]]:
        path = self._directory / ACTIVITY_FILE
        raw = _read_json(path, {})
        if not isinstance(raw, dict):
            raise StorageError(f"Expected a JSON object in {path}")
        try:
            return {
                goal_id: [InvestmentActivityEntry.model_validate(e) for e in entries]
                for goal_id, entries in raw.items()
            }
        except ValidationError as e:
            raise StorageError(f"Malformed activity entry in {path}: {e}")

    def save_activity(
        self,
        activity: dict[str, list[InvestmentActivityEntry]],
    ) -> None:
        _write_json_atomic(
            self._directory / ACTIVITY_FILE,
            {
                goal_id: [e.model_dump(mode="json") for e in entries]
                for goal_id, entries in activity.items()
            },
        )
