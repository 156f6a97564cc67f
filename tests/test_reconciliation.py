"""Tests for pocket deletion reconciliation."""

import pytest
from datetime import date
from decimal import Decimal

from pocket_ledger.ledger.log import TransactionLog
from pocket_ledger.ledger.projections import pocket_balances, total_value
from pocket_ledger.ledger.reconciliation import apply_reconciliation, plan_pocket_deletion
from pocket_ledger.models.transaction import EntryOrigin, Transaction, TransactionKind
from pocket_ledger.services.storage import InMemoryTransactionStorage, StorageError


D = date(2024, 5, 20)


def income(pocket, amount, goal_id=None):
    return Transaction(
        kind=TransactionKind.INCOME, amount=Decimal(amount), date=D,
        pocket_id=pocket, goal_id=goal_id,
    )


def expense(pocket, amount):
    return Transaction(kind=TransactionKind.EXPENSE, amount=Decimal(amount), date=D, pocket_id=pocket)


def transfer(src, dst, amount):
    return Transaction(
        kind=TransactionKind.TRANSFER, amount=Decimal(amount), date=D,
        pocket_id=src, transfer_to_pocket_id=dst,
    )


class FailingStorage(InMemoryTransactionStorage):
    def save_all(self, transactions):
        raise StorageError("quota exceeded")


class TestPlanPocketDeletion:
    """Tests for the pure planning step."""

    def test_outbound_transfer_becomes_income(self):
        """Test that money sent out of P lands as income on the target."""
        out = transfer("p", "q", "30000")
        log = [income("p", "50000"), out]

        plan = plan_pocket_deletion(log, "p", pocket_name="Travel")

        assert set(plan.deletions) == {log[0].id, out.id}
        assert len(plan.insertions) == 1
        inserted = plan.insertions[0]
        assert inserted.kind == TransactionKind.INCOME
        assert inserted.pocket_id == "q"
        assert inserted.amount == Decimal("30000")
        assert inserted.description == "Travel"
        assert inserted.date == D
        assert inserted.origin == EntryOrigin.TRANSFER_FROM_DELETED_POCKET

    def test_inbound_transfer_becomes_expense(self):
        """Test that money sent into P is reverted as an expense on the source."""
        inbound = transfer("q", "p", "12000")
        plan = plan_pocket_deletion([income("q", "20000"), inbound], "p")

        assert plan.deletions == [inbound.id]
        inserted = plan.insertions[0]
        assert inserted.kind == TransactionKind.EXPENSE
        assert inserted.pocket_id == "q"
        assert inserted.origin == EntryOrigin.TRANSFER_REVERTED_DELETED_POCKET

    def test_unrelated_records_untouched(self):
        """Test that other pockets' entries stay."""
        other = income("q", "1000")
        plan = plan_pocket_deletion([other, income("p", "5")], "p")
        assert other.id not in plan.deletions

    def test_plan_is_pure(self):
        """Test that planning does not change the input."""
        log = [income("p", "100"), transfer("p", "q", "40")]
        snapshot = list(log)
        plan_pocket_deletion(log, "p")
        assert log == snapshot

    def test_surviving_pockets_keep_their_balance(self):
        """Test conservation for every pocket that survives."""
        log = [
            income("a", "100000"),
            income("p", "50000"),
            transfer("a", "p", "30000"),
            transfer("p", "b", "20000"),
            expense("p", "5000"),
            transfer("b", "a", "1000"),
        ]
        before = pocket_balances(log)

        plan = plan_pocket_deletion(log, "p")
        survivors = [tx for tx in log if tx.id not in set(plan.deletions)] + plan.insertions
        after = pocket_balances(survivors)

        assert after["a"] == before["a"]
        assert after["b"] == before["b"]
        assert "p" not in after
        assert plan.discarded_amount == before["p"]
        assert total_value(after) == total_value(before) - before["p"]

    def test_empty_pocket_plan(self):
        """Test that deleting an unused pocket plans nothing."""
        plan = plan_pocket_deletion([income("a", "1")], "p")
        assert plan.is_empty
        assert plan.discarded_amount == Decimal("0")


class TestApplyReconciliation:
    """Tests for the atomic apply step."""

    def test_scenario_transfer_then_delete_target(self):
        """Test A(30000) -> B(30000), delete B: A is reverted, B's value is discarded."""
        storage = InMemoryTransactionStorage()
        log = TransactionLog(storage)
        log.append(income("a", "30000"))
        log.append(transfer("a", "b", "30000"))
        before = total_value(pocket_balances(log))

        plan = plan_pocket_deletion(log, "b")
        apply_reconciliation(log, plan)

        balances = pocket_balances(log)
        assert balances["a"] == Decimal("0")
        assert "b" not in balances
        assert plan.discarded_amount == Decimal("30000")
        assert total_value(balances) == before - Decimal("30000")

    def test_apply_is_one_commit(self):
        """Test that deletions and insertions are committed together."""
        storage = InMemoryTransactionStorage()
        log = TransactionLog(storage)
        log.append(income("p", "100"))
        log.append(transfer("p", "q", "60"))
        saves = storage.save_count

        apply_reconciliation(log, plan_pocket_deletion(log, "p"))

        assert storage.save_count == saves + 1

    def test_failed_commit_leaves_log_unchanged(self):
        """Test all-or-nothing behaviour on a storage failure."""
        records = [income("p", "100"), transfer("p", "q", "60")]
        log = TransactionLog(FailingStorage(records))

        with pytest.raises(StorageError):
            apply_reconciliation(log, plan_pocket_deletion(log, "p"))

        assert log.all() == records


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
