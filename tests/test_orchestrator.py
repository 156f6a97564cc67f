"""
Flow tests for LedgerService.

Covers the end-to-end scenarios: transfers, rejected expenses, goal
allocation, pocket deletion and future-date correction.
"""

import threading
import pytest
from datetime import date, timedelta
from decimal import Decimal

from pocket_ledger.config.settings import AppSettings
from pocket_ledger.ledger.errors import (
    GoalBalanceExceededError,
    InsufficientBalanceError,
    LedgerValidationError,
    PlanLimitReachedError,
)
from pocket_ledger.ledger.projections import total_value
from pocket_ledger.models.audit import AuditEventType
from pocket_ledger.models.catalog import MAIN_POCKET_ID, GoalKind
from pocket_ledger.models.transaction import (
    EntryOrigin,
    TransactionDraft,
    TransactionKind,
)
from pocket_ledger.orchestrator import create_ledger_service
from pocket_ledger.services.storage import NotFoundError, StorageError
from pocket_ledger.validation import LedgerGuard


def event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


class TestScenarios:
    """The reference end-to-end scenarios."""

    def test_transfer_between_pockets(self, service):
        """Pocket A 100,000, transfer 40,000 to B: A 60,000, B 40,000."""
        b = service.pockets.create_pocket("B")
        service.record_income(MAIN_POCKET_ID, 100000)

        service.transfer_between_pockets(MAIN_POCKET_ID, b.id, 40000)

        assert service.pocket_balances() == {
            MAIN_POCKET_ID: Decimal("60000"),
            b.id: Decimal("40000"),
        }

    def test_unfunded_transfer_accepted(self, service):
        """Pocket A 10,000, transfer 40,000 to B: accepted, A goes to -30,000."""
        b = service.pockets.create_pocket("B")
        service.record_income(MAIN_POCKET_ID, 10000)

        service.transfer_between_pockets(MAIN_POCKET_ID, b.id, 40000)

        assert service.pocket_balances() == {
            MAIN_POCKET_ID: Decimal("-30000"),
            b.id: Decimal("40000"),
        }

    def test_expense_rejected_when_insufficient(self, service):
        """Pocket A 50,000, expense 80,000: rejected with both amounts, log unchanged."""
        service.record_income(MAIN_POCKET_ID, 50000)
        before = service.transactions()

        with pytest.raises(InsufficientBalanceError) as exc:
            service.record_expense(MAIN_POCKET_ID, 80000)

        assert exc.value.current == Decimal("50000")
        assert exc.value.requested == Decimal("80000")
        assert service.transactions() == before

    def test_allocation_to_goal(self, service):
        """Allocate 20,000 from A (100,000) to G: both goal metrics are published."""
        goal = service.goals.create_goal("Trip", Decimal("1000000"), 6)
        service.record_income(MAIN_POCKET_ID, 100000)

        service.allocate_to_goal(MAIN_POCKET_ID, goal.id, 20000)

        assert service.pocket_balances()[MAIN_POCKET_ID] == Decimal("80000")
        assert service.goal_balances().get(goal.id, Decimal("0")) == Decimal("0")
        assert service.goal_available_balances()[goal.id] == Decimal("20000")
        assert service.goal_display_balances()[goal.id] == Decimal("20000")

    def test_delete_transfer_target_discards_value(self, service):
        """A 30,000 sent to B, B deleted: A reverted, 30,000 leaves the system."""
        b = service.pockets.create_pocket("B")
        service.record_income(MAIN_POCKET_ID, 30000)
        service.transfer_between_pockets(MAIN_POCKET_ID, b.id, 30000)
        before = total_value(service.pocket_balances())

        plan = service.delete_pocket(b.id)

        balances = service.pocket_balances()
        assert balances[MAIN_POCKET_ID] == Decimal("0")
        assert b.id not in balances
        assert plan.discarded_amount == Decimal("30000")
        assert total_value(balances) == before - Decimal("30000")
        assert service.pockets.get_pocket(b.id) is None

    def test_future_income_dated_today(self, service, today, audit_storage):
        """An income dated a year ahead is stored with today's date."""
        tx = service.record_income(MAIN_POCKET_ID, 1000, entry_date=today + timedelta(days=365))

        assert tx.date == today
        assert AuditEventType.DATE_CLAMPED in event_types(audit_storage)


class TestPocketDeletion:
    """Tests for delete_pocket."""

    def test_outbound_transfer_preserved_on_target(self, service):
        """Test that money already moved out of the deleted pocket stays."""
        b = service.pockets.create_pocket("Travel")
        service.record_income(b.id, 50000)
        service.transfer_between_pockets(b.id, MAIN_POCKET_ID, 20000)

        service.delete_pocket(b.id)

        assert service.pocket_balances() == {MAIN_POCKET_ID: Decimal("20000")}
        inserted = [t for t in service.transactions() if t.origin != EntryOrigin.USER]
        assert len(inserted) == 1
        assert inserted[0].description == "Travel"
        assert inserted[0].origin == EntryOrigin.TRANSFER_FROM_DELETED_POCKET

    def test_preview_matches_delete(self, service):
        """Test that the preview plans exactly what delete applies."""
        b = service.pockets.create_pocket("B")
        service.record_income(b.id, 700)

        preview = service.preview_pocket_deletion(b.id)
        assert preview.discarded_amount == Decimal("700")
        assert service.delete_pocket(b.id).deletions == preview.deletions

    def test_main_pocket_cannot_be_deleted(self, service):
        """Test main pocket protection."""
        service.record_income(MAIN_POCKET_ID, 10)
        with pytest.raises(LedgerValidationError):
            service.delete_pocket(MAIN_POCKET_ID)
        assert service.pocket_balances() == {MAIN_POCKET_ID: Decimal("10")}

    def test_unknown_pocket(self, service):
        """Test NotFoundError for a pocket not in the catalog."""
        with pytest.raises(NotFoundError):
            service.delete_pocket("ghost")

    def test_storage_failure_keeps_pocket(self, service, storage, audit_storage, monkeypatch):
        """Test that a failed commit leaves the log and the catalog untouched."""
        b = service.pockets.create_pocket("B")
        service.record_income(b.id, 100)
        before = service.transactions()

        def fail(transactions):
            raise StorageError("disk full")

        monkeypatch.setattr(storage, "save_all", fail)

        with pytest.raises(StorageError):
            service.delete_pocket(b.id)

        assert service.transactions() == before
        assert service.pockets.get_pocket(b.id) is not None
        assert AuditEventType.STORAGE_ERROR in event_types(audit_storage)

    def test_goal_stays_non_negative_after_deleting_its_funding_pocket(self, service):
        """Test that removing a withdrawn allocation floors the goal at zero."""
        b = service.pockets.create_pocket("B")
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        service.record_income(b.id, 100000)
        service.allocate_to_goal(b.id, goal.id, 50000)
        service.withdraw_from_goal(goal.id, MAIN_POCKET_ID, 50000)

        plan = service.delete_pocket(b.id)

        assert plan.discarded_amount == Decimal("50000")
        assert service.goal_available_balances()[goal.id] == Decimal("0")
        assert service.goal_display_balances()[goal.id] == Decimal("0")
        assert service.pocket_balances() == {MAIN_POCKET_ID: Decimal("50000")}

    def test_deletion_locks_cover_goals(self, service):
        """Test that deleting a pocket also locks the goals its entries fund."""
        b = service.pockets.create_pocket("B")
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        service.record_income(b.id, 1000)
        service.allocate_to_goal(b.id, goal.id, 400)
        service.withdraw_from_goal(goal.id, b.id, 100)

        assert service._deletion_keys(b.id) == {f"pocket:{b.id}", f"goal:{goal.id}"}

    def test_deletion_is_audited(self, service, audit_storage):
        """Test the pocket_deleted audit event."""
        b = service.pockets.create_pocket("B")
        service.delete_pocket(b.id)
        assert event_types(audit_storage)[-1] == AuditEventType.POCKET_DELETED


class TestEntriesThroughService:
    """Tests for entries, drafts and edits."""

    def test_expense_within_balance(self, service):
        """Test a covered expense."""
        service.record_income(MAIN_POCKET_ID, 1000)
        service.record_expense(MAIN_POCKET_ID, 1000, category="Food")
        assert service.pocket_balances()[MAIN_POCKET_ID] == Decimal("0")

    def test_expense_to_goal_is_validation_error(self, service):
        """Test that goal-targeted expenses fail validation before sufficiency."""
        with pytest.raises(LedgerValidationError):
            service.record_expense(MAIN_POCKET_ID, 1, goal_id="g")

    def test_rejection_is_audited(self, service, audit_storage):
        """Test that insufficiency is recorded in the audit log."""
        with pytest.raises(InsufficientBalanceError):
            service.record_expense(MAIN_POCKET_ID, 1)
        assert event_types(audit_storage) == [AuditEventType.INSUFFICIENT_BALANCE]

    def test_record_draft_routes_by_kind(self, service):
        """Test that drafts use the normal income and expense paths."""
        service.record_draft(TransactionDraft(kind=TransactionKind.INCOME, amount=Decimal("500")), MAIN_POCKET_ID)
        tx = service.record_draft(
            TransactionDraft(kind=TransactionKind.EXPENSE, amount=Decimal("200"), category="Food"),
            MAIN_POCKET_ID,
        )
        assert tx.kind == TransactionKind.EXPENSE
        assert service.pocket_balances()[MAIN_POCKET_ID] == Decimal("300")

    def test_expense_draft_checks_sufficiency(self, service):
        """Test that a scanned receipt cannot overdraw a pocket."""
        with pytest.raises(InsufficientBalanceError):
            service.record_draft(
                TransactionDraft(kind=TransactionKind.EXPENSE, amount=Decimal("1")), MAIN_POCKET_ID
            )

    def test_transfer_draft_rejected(self, service):
        """Test that drafts cannot create transfers."""
        with pytest.raises(LedgerValidationError):
            service.record_draft(
                TransactionDraft(kind=TransactionKind.TRANSFER, amount=Decimal("1")), MAIN_POCKET_ID
            )

    def test_update_expense_rechecks_balance(self, service):
        """Test that an edited expense must still be covered."""
        service.record_income(MAIN_POCKET_ID, 1000)
        tx = service.record_expense(MAIN_POCKET_ID, 400)

        updated = service.update_transaction(tx.id, amount=Decimal("1000"))
        assert updated.amount == Decimal("1000")

        with pytest.raises(InsufficientBalanceError):
            service.update_transaction(tx.id, amount=Decimal("1001"))
        assert service.log.get(tx.id).amount == Decimal("1000")

    def test_update_clamps_date(self, service, today):
        """Test that edits cannot move an entry into the future."""
        tx = service.record_income(MAIN_POCKET_ID, 10, entry_date=today - timedelta(days=5))
        updated = service.update_transaction(tx.id, date=today + timedelta(days=2))
        assert updated.date == today
        assert updated.created_at == tx.created_at

    def test_transfer_only_accepts_label_edits(self, service):
        """Test that transfers keep their amount."""
        b = service.pockets.create_pocket("B")
        service.record_income(MAIN_POCKET_ID, 100)
        tx = service.transfer_between_pockets(MAIN_POCKET_ID, b.id, 50)

        assert service.update_transaction(tx.id, description="Rent share").description == "Rent share"
        with pytest.raises(LedgerValidationError):
            service.update_transaction(tx.id, amount=Decimal("10"))

    def test_delete_transaction(self, service, audit_storage):
        """Test removing a single entry."""
        tx = service.record_income(MAIN_POCKET_ID, 10)
        service.delete_transaction(tx.id)
        assert service.transactions() == []
        assert event_types(audit_storage)[-1] == AuditEventType.TRANSACTION_DELETED


class TestGoalsThroughService:
    """Tests for goal transfers and investment simulation."""

    def test_withdraw_uses_available_balance(self, service):
        """Test that allocated money can be withdrawn."""
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        service.record_income(MAIN_POCKET_ID, 50000)
        service.allocate_to_goal(MAIN_POCKET_ID, goal.id, 30000)

        service.withdraw_from_goal(goal.id, MAIN_POCKET_ID, 10000)

        assert service.goal_available_balances()[goal.id] == Decimal("20000")
        assert service.pocket_balances()[MAIN_POCKET_ID] == Decimal("30000")

    def test_goal_never_negative(self, service):
        """Test that over-withdrawal is rejected."""
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        service.record_income(MAIN_POCKET_ID, 500, goal_id=goal.id)
        with pytest.raises(GoalBalanceExceededError):
            service.withdraw_from_goal(goal.id, MAIN_POCKET_ID, 501)
        assert service.goal_available_balances()[goal.id] == Decimal("500")

    def test_goal_non_negative_after_deleting_allocation(self, service):
        """Test that deleting a spent allocation does not take the goal below zero."""
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        allocation = service.allocate_to_goal(MAIN_POCKET_ID, goal.id, 1000)
        service.withdraw_from_goal(goal.id, MAIN_POCKET_ID, 1000)

        service.delete_transaction(allocation.id)

        assert service.goal_available_balances()[goal.id] == Decimal("0")
        assert service.goal_display_balances()[goal.id] == Decimal("0")

    def test_allocation_from_empty_pocket(self, service):
        """Test that allocations are not gated by the pocket balance."""
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        service.allocate_to_goal(MAIN_POCKET_ID, goal.id, 5000)
        assert service.pocket_balances()[MAIN_POCKET_ID] == Decimal("-5000")
        assert service.goal_available_balances()[goal.id] == Decimal("5000")

    def test_run_investment_simulations(self, service, today):
        """Test that simulated returns are persisted and the date advances."""
        goal = service.goals.create_goal(
            "Fund", Decimal("10000000"), 12,
            kind=GoalKind.INVESTMENT,
            annual_return_percentage=Decimal("10"),
            today=today - timedelta(days=1),
        )
        service.record_income(MAIN_POCKET_ID, 3650000, goal_id=goal.id, entry_date=today - timedelta(days=1))

        added = service.run_investment_simulations()

        assert added == Decimal("1000")
        assert service.goals.get_goal(goal.id).last_return_calculation_date == today
        assert service.goal_display_balances()[goal.id] == Decimal("3651000")
        assert service.run_investment_simulations() == Decimal("0")

    def test_delete_goal(self, service, audit_storage):
        """Test goal removal and its audit event."""
        goal = service.goals.create_goal("Trip", Decimal("100000"), 6)
        service.delete_goal(goal.id)
        assert service.goals.get_goal(goal.id) is None
        assert event_types(audit_storage)[-1] == AuditEventType.GOAL_DELETED


class TestConcurrency:
    """Tests for per-pocket serialization."""

    def test_concurrent_expenses_cannot_overdraw(self, service):
        """Test that parallel expenses never take a pocket below zero."""
        service.record_income(MAIN_POCKET_ID, 1000)
        errors = []

        def spend():
            try:
                service.record_expense(MAIN_POCKET_ID, 100)
            except InsufficientBalanceError as e:
                errors.append(e)

        threads = [threading.Thread(target=spend) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert service.pocket_balances()[MAIN_POCKET_ID] == Decimal("0")
        assert len(errors) == 10


class TestFactory:
    """Tests for create_ledger_service."""

    def test_memory_backend(self, today):
        """Test wiring with in-memory storage."""
        service = create_ledger_service(
            AppSettings(storage_backend="memory"),
            guard=LedgerGuard(today=lambda: today),
        )
        assert service.pockets.get_pocket(MAIN_POCKET_ID) is not None

    def test_json_backend_persists(self, tmp_path):
        """Test that a json-backed service survives a restart."""
        settings = AppSettings(storage_backend="json", data_dir=str(tmp_path))
        first = create_ledger_service(settings)
        first.record_income(MAIN_POCKET_ID, 2500)

        second = create_ledger_service(settings)
        assert second.pocket_balances() == {MAIN_POCKET_ID: Decimal("2500")}

    def test_basic_plan_limits_pockets(self):
        """Test that the basic plan allows the main pocket plus one."""
        service = create_ledger_service(AppSettings(storage_backend="memory", premium=False))
        service.pockets.create_pocket("Second")
        with pytest.raises(PlanLimitReachedError):
            service.pockets.create_pocket("Third")

    def test_unknown_backend_rejected(self):
        """Test settings validation of the backend name."""
        with pytest.raises(ValueError):
            AppSettings(storage_backend="postgres")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
