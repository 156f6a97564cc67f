"""
Ledger Service for Pocket Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Entries (validate → check sufficiency → append → audit)
2. Transfers (pocket → pocket, pocket → goal, goal → pocket)
3. Pocket deletion (plan reconciliation → atomic apply → drop pocket)
4. Investment goals (simulate daily returns → persist activity)

DESIGN DECISION: The service enforces the boundaries:
- No balance-affecting change bypasses the transaction log
- No rejected request touches the log
- Every step is audited

Sufficiency checks are point-in-time. The service holds one lock per
pocket (and per goal) around check + append, acquired in sorted order,
so concurrent callers in the same process cannot overdraw a pocket.
There is no cross-process locking: storage is last-writer-wins.
"""

import threading
from contextlib import ExitStack, contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional
from uuid import UUID

import structlog

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.catalog import GoalCatalog, PocketCatalog
from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import AppSettings
from pocket_ledger.entitlements import goal_gate, pocket_gate
from pocket_ledger.ledger import projections
from pocket_ledger.ledger.entries import build_entry, record_expense, record_income
from pocket_ledger.ledger.errors import (
    InsufficientBalanceError,
    LedgerError,
    LedgerValidationError,
)
from pocket_ledger.ledger.investment import (
    compute_investment_state,
    simulate_daily_returns,
)
from pocket_ledger.ledger.log import TransactionLog
from pocket_ledger.ledger.reconciliation import (
    ReconciliationPlan,
    apply_reconciliation,
    plan_pocket_deletion,
)
from pocket_ledger.ledger.transfers import (
    allocate_to_goal,
    transfer_between_pockets,
    withdraw_from_goal,
)
from pocket_ledger.models.catalog import Goal, GoalKind
from pocket_ledger.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionSummary,
)
from pocket_ledger.queries import summarize
from pocket_ledger.services.storage import (
    AuditStorageInterface,
    CatalogStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryCatalogStorage,
    InMemoryTransactionStorage,
    JsonFileCatalogStorage,
    JsonFileTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from pocket_ledger.services.storage.json_file import TRANSACTIONS_FILE
from pocket_ledger.validation import LedgerGuard


logger = structlog.get_logger(__name__)

# Fields a caller may change on an existing entry
EDITABLE_FIELDS = frozenset({
    "kind", "amount", "description", "category", "date", "pocket_id", "goal_id",
})
# Transfers keep their money movement; only labels may change
EDITABLE_TRANSFER_FIELDS = frozenset({"description", "category"})


class LedgerService:
    """
    Entry point for every ledger operation.

    Wraps the pure ledger functions with locking, the pocket/goal
    catalog and audit logging.
    """

    def __init__(
        self,
        log: TransactionLog,
        pockets: PocketCatalog,
        goals: GoalCatalog,
        guard: Optional[LedgerGuard] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._log = log
        self._pockets = pockets
        self._goals = goals
        self._guard = guard or LedgerGuard()
        self._audit_logger = audit_logger or AuditLogger()

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def log(self) -> TransactionLog:
        return self._log

    @property
    def pockets(self) -> PocketCatalog:
        return self._pockets

    @property
    def goals(self) -> GoalCatalog:
        return self._goals

    @property
    def guard(self) -> LedgerGuard:
        return self._guard

    # =========================================================================
    # LOCKING
    # =========================================================================

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def _locked(self, *keys: str) -> Iterator[None]:
        """Hold the locks of all keys, acquired in sorted order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._lock_for(key))
            yield

    @staticmethod
    def _pocket_key(pocket_id: str) -> str:
        return f"pocket:{pocket_id}"

    @staticmethod
    def _goal_key(goal_id: str) -> str:
        return f"goal:{goal_id}"

    def _deletion_keys(self, pocket_id: str) -> frozenset[str]:
        """Lock keys of every pocket and goal that deleting `pocket_id` rewrites."""
        keys = {self._pocket_key(pocket_id)}
        for tx in self._log:
            if not tx.touches_pocket(pocket_id):
                continue
            keys.add(self._pocket_key(tx.pocket_id))
            if tx.transfer_to_pocket_id:
                keys.add(self._pocket_key(tx.transfer_to_pocket_id))
            if tx.goal_id:
                keys.add(self._goal_key(tx.goal_id))
            if tx.transfer_to_goal_id:
                keys.add(self._goal_key(tx.transfer_to_goal_id))
        return frozenset(keys)

    # =========================================================================
    # AUDIT HELPERS
    # =========================================================================

    def _audit_rejection(
        self,
        operation: str,
        error: LedgerError,
        correlation_id: UUID,
        entity_type: str = "pocket",
        entity_id: str = "",
    ) -> None:
        if isinstance(error, InsufficientBalanceError):
            self._audit_logger.log_insufficient_balance(
                entity_type=entity_type,
                entity_id=entity_id,
                current=str(error.current),
                requested=str(error.requested),
                correlation_id=correlation_id,
            )
        else:
            self._audit_logger.log_validation_failed(
                operation=operation,
                message=str(error),
                correlation_id=correlation_id,
            )

    def _audit_date_clamp(self, requested: Optional[date], correlation_id: UUID) -> None:
        today = self._guard.today()
        if requested is not None and requested > today:
            self._audit_logger.log_date_clamped(
                requested=requested.isoformat(),
                applied=today.isoformat(),
                correlation_id=correlation_id,
            )

    def _run(
        self,
        operation: str,
        action: Callable[[], Transaction],
        correlation_id: UUID,
        entity_type: str = "pocket",
        entity_id: str = "",
    ) -> Transaction:
        """Run a mutation, audit the outcome and re-raise failures."""
        try:
            record = action()
        except LedgerError as e:
            self._audit_rejection(operation, e, correlation_id, entity_type, entity_id)
            raise
        except StorageError as e:
            self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_transaction_recorded(record, correlation_id=correlation_id)
        return record

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def record_income(
        self,
        pocket_id: str,
        amount: Any,
        description: str = "",
        category: str = "",
        entry_date: Optional[date] = None,
        goal_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record income on a pocket, or on a goal when `goal_id` is set.

        A future `entry_date` is silently replaced by today.
        """
        correlation_id = correlation_id or create_correlation_id()

        def action() -> Transaction:
            with self._locked(self._pocket_key(pocket_id)):
                record = record_income(
                    self._log,
                    pocket_id,
                    amount,
                    description=description,
                    category=category,
                    entry_date=entry_date,
                    goal_id=goal_id,
                    guard=self._guard,
                )
            self._audit_date_clamp(entry_date, correlation_id)
            return record

        return self._run("record_income", action, correlation_id, entity_id=pocket_id)

    def record_expense(
        self,
        pocket_id: str,
        amount: Any,
        description: str = "",
        category: str = "",
        entry_date: Optional[date] = None,
        goal_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record an expense after checking the pocket can cover it.

        Raises:
            InsufficientBalanceError: amount exceeds the pocket balance
            LedgerValidationError: non-positive amount or a goal target
        """
        correlation_id = correlation_id or create_correlation_id()

        def action() -> Transaction:
            with self._locked(self._pocket_key(pocket_id)):
                self._guard.check_goal_income_only(TransactionKind.EXPENSE, goal_id)
                self._guard.check_sufficiency(self._log, pocket_id, amount)
                record = record_expense(
                    self._log,
                    pocket_id,
                    amount,
                    description=description,
                    category=category,
                    entry_date=entry_date,
                    goal_id=goal_id,
                    guard=self._guard,
                )
            self._audit_date_clamp(entry_date, correlation_id)
            return record

        return self._run("record_expense", action, correlation_id, entity_id=pocket_id)

    def record_draft(
        self,
        draft: TransactionDraft,
        pocket_id: str,
        goal_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a draft produced by an external collaborator (receipt scan, parser).

        Drafts go through exactly the same paths as manual entries.

        Raises:
            LedgerValidationError: For transfer drafts
        """
        correlation_id = correlation_id or create_correlation_id()
        kwargs = dict(
            pocket_id=pocket_id,
            amount=draft.amount,
            description=draft.description,
            category=draft.category,
            entry_date=draft.date,
            goal_id=goal_id,
            correlation_id=correlation_id,
        )

        if draft.kind == TransactionKind.INCOME:
            return self.record_income(**kwargs)
        elif draft.kind == TransactionKind.EXPENSE:
            return self.record_expense(**kwargs)

        error = LedgerValidationError("Transfers cannot be recorded from a draft")
        self._audit_rejection("record_draft", error, correlation_id)
        raise error

    # =========================================================================
    # TRANSFERS
    # =========================================================================

    def transfer_between_pockets(
        self,
        from_pocket_id: str,
        to_pocket_id: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        correlation_id = correlation_id or create_correlation_id()

        def action() -> Transaction:
            with self._locked(self._pocket_key(from_pocket_id), self._pocket_key(to_pocket_id)):
                return transfer_between_pockets(
                    self._log, from_pocket_id, to_pocket_id, amount, guard=self._guard
                )

        return self._run(
            "transfer_between_pockets", action, correlation_id, entity_id=from_pocket_id
        )

    def allocate_to_goal(
        self,
        from_pocket_id: str,
        to_goal_id: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        correlation_id = correlation_id or create_correlation_id()

        def action() -> Transaction:
            with self._locked(self._pocket_key(from_pocket_id), self._goal_key(to_goal_id)):
                return allocate_to_goal(
                    self._log, from_pocket_id, to_goal_id, amount, guard=self._guard
                )

        return self._run("allocate_to_goal", action, correlation_id, entity_id=from_pocket_id)

    def withdraw_from_goal(
        self,
        from_goal_id: str,
        to_pocket_id: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        correlation_id = correlation_id or create_correlation_id()

        def action() -> Transaction:
            with self._locked(self._goal_key(from_goal_id), self._pocket_key(to_pocket_id)):
                return withdraw_from_goal(
                    self._log, from_goal_id, to_pocket_id, amount, guard=self._guard
                )

        return self._run(
            "withdraw_from_goal",
            action,
            correlation_id,
            entity_type="goal",
            entity_id=from_goal_id,
        )

    # =========================================================================
    # EDITS AND DELETES
    # =========================================================================

    def update_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> Transaction:
        """
        Edit an existing entry.

        Amount, goal and date rules are re-applied to the result. An
        edited expense must still be covered by its pocket, ignoring
        the entry's own previous value. Transfers only accept label edits.

        Raises:
            NotFoundError: unknown id
            LedgerValidationError: invalid change
            InsufficientBalanceError: edited expense no longer covered
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = self._log.get(transaction_id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        try:
            allowed = EDITABLE_TRANSFER_FIELDS if existing.is_transfer else EDITABLE_FIELDS
            unknown = set(changes) - allowed
            if unknown:
                raise LedgerValidationError(
                    f"Cannot change {', '.join(sorted(unknown))} on this entry"
                )

            kind = changes.get("kind", existing.kind)
            if kind == TransactionKind.TRANSFER and not existing.is_transfer:
                raise LedgerValidationError("An entry cannot be turned into a transfer")

            pocket_id = changes.get("pocket_id", existing.pocket_id)
            with self._locked(self._pocket_key(existing.pocket_id), self._pocket_key(pocket_id)):
                if existing.is_transfer:
                    updated = self._log.update(transaction_id, changes)
                else:
                    updated = self._update_entry(existing, changes, kind, pocket_id)
        except LedgerError as e:
            self._audit_rejection(
                "update_transaction", e, correlation_id, entity_id=existing.pocket_id
            )
            raise
        except StorageError as e:
            self._audit_logger.log_storage_error(
                operation="update_transaction",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        if "date" in changes:
            self._audit_date_clamp(changes["date"], correlation_id)
        self._audit_logger.log_transaction_updated(
            updated,
            changed_fields=sorted(changes),
            correlation_id=correlation_id,
        )
        return updated

    def _update_entry(
        self,
        existing: Transaction,
        changes: dict[str, Any],
        kind: TransactionKind,
        pocket_id: str,
    ) -> Transaction:
        # Re-run the entry rules on the merged values
        candidate = build_entry(
            kind,
            pocket_id,
            changes.get("amount", existing.amount),
            description=changes.get("description", existing.description),
            category=changes.get("category", existing.category),
            entry_date=changes.get("date", existing.date),
            goal_id=changes.get("goal_id", existing.goal_id),
            guard=self._guard,
        )

        if candidate.kind == TransactionKind.EXPENSE:
            others = [tx for tx in self._log if tx.id != existing.id]
            self._guard.check_sufficiency(others, candidate.pocket_id, candidate.amount)

        return self._log.update(
            existing.id,
            {
                "kind": candidate.kind,
                "amount": candidate.amount,
                "description": candidate.description,
                "category": candidate.category,
                "date": candidate.date,
                "pocket_id": candidate.pocket_id,
                "goal_id": candidate.goal_id,
            },
        )

    def delete_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Remove a single entry.

        Raises:
            NotFoundError: unknown id
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._log.remove(transaction_id)
        except NotFoundError:
            raise
        except StorageError as e:
            self._audit_logger.log_storage_error(
                operation="delete_transaction",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        self._audit_logger.log_transaction_deleted(transaction_id, correlation_id=correlation_id)

    def preview_pocket_deletion(self, pocket_id: str) -> ReconciliationPlan:
        """
        The reconciliation that deleting `pocket_id` would apply.

        Nothing is written. `discarded_amount` is what the UI must warn about.
        """
        pocket = self._pockets.get_pocket(pocket_id)
        name = pocket.name if pocket else "Pocket"
        return plan_pocket_deletion(self._log, pocket_id, pocket_name=name)

    def delete_pocket(
        self,
        pocket_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationPlan:
        """
        Delete a pocket and reconcile its entries.

        The reconciliation is committed first as one atomic batch. The
        catalog entry is removed only after that commit succeeded.

        Raises:
            LedgerValidationError: For the main pocket
            NotFoundError: If the pocket is not in the catalog
            StorageError: If the batch commit failed (log unchanged)
        """
        correlation_id = correlation_id or create_correlation_id()
        pocket = self._pockets.get_pocket(pocket_id)

        try:
            if pocket is None:
                raise NotFoundError(f"Pocket not found: {pocket_id}")
            if pocket.is_main:
                raise LedgerValidationError("Cannot delete Main Pocket")

            # The key set is re-read under the locks; retry if it grew meanwhile
            while True:
                keys = self._deletion_keys(pocket_id)
                with self._locked(*keys):
                    if not self._deletion_keys(pocket_id) <= keys:
                        continue
                    plan = plan_pocket_deletion(self._log, pocket_id, pocket_name=pocket.name)
                    apply_reconciliation(self._log, plan)
                    break
            self._pockets.remove_pocket(pocket_id)
        except (LedgerError, NotFoundError) as e:
            self._audit_logger.log_validation_failed(
                operation="delete_pocket",
                message=str(e),
                correlation_id=correlation_id,
            )
            raise
        except StorageError as e:
            self._audit_logger.log_storage_error(
                operation="delete_pocket",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        if plan.discarded_amount != 0:
            logger.warning(
                "pocket_balance_discarded",
                pocket_id=pocket_id,
                amount=str(plan.discarded_amount),
            )
        self._audit_logger.log_pocket_deleted(
            pocket_id=pocket_id,
            pocket_name=pocket.name,
            deleted_count=len(plan.deletions),
            inserted_count=len(plan.insertions),
            discarded_amount=str(plan.discarded_amount),
            correlation_id=correlation_id,
        )
        return plan

    def delete_goal(
        self,
        goal_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Goal:
        """
        Remove a goal and its investment activity from the catalog.

        Transactions that reference the goal are kept; whether a goal
        with money in it may be deleted is the caller's decision.
        """
        correlation_id = correlation_id or create_correlation_id()
        goal = self._goals.remove_goal(goal_id)
        self._audit_logger.log_goal_deleted(
            goal_id=goal.id,
            goal_name=goal.name,
            correlation_id=correlation_id,
        )
        return goal

    # =========================================================================
    # READERS
    # =========================================================================

    def transactions(self) -> list[Transaction]:
        return self._log.all()

    def pocket_balances(self) -> dict[str, Decimal]:
        return projections.pocket_balances(self._log)

    def goal_balances(self) -> dict[str, Decimal]:
        """Lifetime income-funded total per goal."""
        return projections.goal_balances(self._log)

    def goal_available_balances(self) -> dict[str, Decimal]:
        """What each goal holds now and could pay out."""
        return projections.goal_available_balances(self._log)

    def goal_display_balances(self) -> dict[str, Decimal]:
        """
        Balance shown to the user per goal.

        Investment goals include their simulated return on top of principal.
        """
        transactions = self._log.all()
        balances = projections.goal_available_balances(transactions)
        for goal in self._goals.list_goals():
            if goal.kind == GoalKind.INVESTMENT:
                state = compute_investment_state(
                    goal.id, transactions, self._goals.activity_for(goal.id)
                )
                balances[goal.id] = state.total
            else:
                balances.setdefault(goal.id, projections.ZERO)
        return balances

    def summary(self) -> TransactionSummary:
        return summarize(self._log)

    # =========================================================================
    # INVESTMENT GOALS
    # =========================================================================

    def run_investment_simulations(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Bring every investment goal's simulated return up to today.

        Returns:
            Total simulated return added across all goals
        """
        correlation_id = correlation_id or create_correlation_id()
        today = self._guard.today()
        transactions = self._log.all()
        total_added = projections.ZERO

        for goal in self._goals.list_goals():
            if goal.kind != GoalKind.INVESTMENT:
                continue

            with self._locked(self._goal_key(goal.id)):
                result = simulate_daily_returns(
                    goal, transactions, self._goals.activity_for(goal.id), today
                )
                self._goals.append_activity(goal.id, result.entries)
                if result.last_date != goal.last_return_calculation_date:
                    self._goals.set_last_return_date(goal.id, result.last_date)

            if result.entries:
                total_added += result.total_added
                self._audit_logger.log_investment_return(
                    goal_id=goal.id,
                    total=str(result.total_added),
                    days=len(result.entries),
                    correlation_id=correlation_id,
                )

        return total_added


# =============================================================================
# FACTORY
# =============================================================================

def _build_storage(
    app: AppSettings,
) -> tuple[TransactionStorageInterface, CatalogStorageInterface, Optional[AuditStorageInterface]]:
    if app.storage_backend == "memory":
        return InMemoryTransactionStorage(), InMemoryCatalogStorage(), None

    catalog = JsonFileCatalogStorage(app.data_path)
    if app.storage_backend == "json":
        return JsonFileTransactionStorage(app.data_path / TRANSACTIONS_FILE), catalog, None

    sheets_client = GoogleSheetsClient()
    return (
        GoogleSheetsTransactionStorage(sheets_client),
        catalog,
        GoogleSheetsAuditStorage(sheets_client),
    )


def create_ledger_service(
    settings: Optional[AppSettings] = None,
    guard: Optional[LedgerGuard] = None,
) -> LedgerService:
    """
    Factory function to create a fully wired LedgerService.

    Args:
        settings: App settings; loaded from the environment when omitted
        guard: Override the validation guard (tests inject `today`)

    Returns:
        LedgerService with the main pocket guaranteed to exist
    """
    app = settings or get_settings().app
    transaction_storage, catalog_storage, audit_storage = _build_storage(app)

    service = LedgerService(
        log=TransactionLog(transaction_storage),
        pockets=PocketCatalog(catalog_storage, may_create_pocket=pocket_gate(app)),
        goals=GoalCatalog(catalog_storage, may_create_goal=goal_gate(app)),
        guard=guard,
        audit_logger=AuditLogger(audit_storage),
    )
    service.pockets.ensure_main_pocket()
    logger.info("ledger_service_created", storage_backend=app.storage_backend)
    return service
