"""Tests for transaction queries, reports and currency helpers."""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from pocket_ledger.models.transaction import Transaction, TransactionKind
from pocket_ledger.queries import (
    TransactionFilters,
    categories,
    filter_transactions,
    recent_transactions,
    summarize,
    totals_by_category,
)
from pocket_ledger.utils.currency import format_idr, format_idr_input, parse_idr


@pytest.fixture
def ledger() -> list[Transaction]:
    return [
        Transaction(kind=TransactionKind.INCOME, amount=Decimal("5000000"), category="Salary",
                    date=date(2024, 5, 1), pocket_id="main-pocket"),
        Transaction(kind=TransactionKind.EXPENSE, amount=Decimal("250000"), category="Food",
                    date=date(2024, 5, 3), pocket_id="main-pocket"),
        Transaction(kind=TransactionKind.EXPENSE, amount=Decimal("1500000"), category="Rent",
                    date=date(2024, 5, 5), pocket_id="main-pocket"),
        Transaction(kind=TransactionKind.EXPENSE, amount=Decimal("100000"), category="Food",
                    date=date(2024, 6, 1), pocket_id="food"),
        Transaction(kind=TransactionKind.TRANSFER, amount=Decimal("300000"), category="Moves",
                    date=date(2024, 6, 2), pocket_id="main-pocket", transfer_to_pocket_id="food"),
    ]


class TestFilters:
    """Tests for TransactionFilters."""

    def test_no_filters_returns_everything(self, ledger):
        """Test that unset filters match all records."""
        assert filter_transactions(ledger) == ledger
        assert filter_transactions(ledger, TransactionFilters()) == ledger

    def test_kind_and_category(self, ledger):
        """Test combined kind and category filters."""
        found = filter_transactions(
            ledger, TransactionFilters(kind=TransactionKind.EXPENSE, category="Food")
        )
        assert [t.amount for t in found] == [Decimal("250000"), Decimal("100000")]

    def test_date_range_is_inclusive(self, ledger):
        """Test start and end dates."""
        found = filter_transactions(
            ledger, TransactionFilters(start_date=date(2024, 5, 3), end_date=date(2024, 6, 1))
        )
        assert len(found) == 3

    def test_pocket_matches_transfer_target(self, ledger):
        """Test that a pocket filter includes transfers into it."""
        found = filter_transactions(ledger, TransactionFilters(pocket_id="food"))
        assert {t.kind for t in found} == {TransactionKind.EXPENSE, TransactionKind.TRANSFER}

    def test_inverted_range_rejected(self):
        """Test that start must not be after end."""
        with pytest.raises(ValidationError):
            TransactionFilters(start_date=date(2024, 6, 2), end_date=date(2024, 6, 1))

    def test_describe(self):
        """Test the human readable filter description."""
        filters = TransactionFilters(category="Food", start_date=date(2024, 5, 1))
        assert filters.describe() == "Transactions | category: Food | since 2024-05-01"


class TestReports:
    """Tests for summaries and breakdowns."""

    def test_summary_excludes_transfers(self, ledger):
        """Test the income/expense summary."""
        summary = summarize(ledger)
        assert summary.total_income == Decimal("5000000")
        assert summary.total_expenses == Decimal("1850000")
        assert summary.balance == Decimal("3150000")
        assert summary.income_count == 1
        assert summary.expense_count == 3

    def test_categories_skip_transfers(self, ledger):
        """Test distinct sorted categories."""
        assert categories(ledger) == ["Food", "Rent", "Salary"]

    def test_totals_by_category(self, ledger):
        """Test the expense breakdown, largest first."""
        rows = totals_by_category(ledger)
        assert [(r.category, r.total, r.count) for r in rows] == [
            ("Rent", Decimal("1500000"), 1),
            ("Food", Decimal("350000"), 2),
        ]

    def test_transfer_breakdown_rejected(self, ledger):
        """Test that transfers have no category report."""
        with pytest.raises(ValueError):
            totals_by_category(ledger, kind=TransactionKind.TRANSFER)

    def test_recent_transactions(self, ledger):
        """Test newest-first ordering and the limit."""
        recent = recent_transactions(ledger, limit=2)
        assert [t.date for t in recent] == [date(2024, 6, 2), date(2024, 6, 1)]


class TestCurrency:
    """Tests for IDR formatting."""

    def test_format_idr(self):
        """Test dot-grouped display without decimals."""
        assert format_idr(Decimal("1000000")) == "Rp 1.000.000"
        assert format_idr(0) == "Rp 0"
        assert format_idr(Decimal("999.5")) == "Rp 1.000"

    def test_format_idr_input(self):
        """Test comma-grouped input formatting."""
        assert format_idr_input(1250000) == "1,250,000"
        assert format_idr_input(0) == ""

    @pytest.mark.parametrize("raw, expected", [
        ("Rp 1.000.000", Decimal("1000000")),
        ("1,250,000", Decimal("1250000")),
        ("rp50000", Decimal("50000")),
        ("", Decimal("0")),
        ("abc", Decimal("0")),
    ])
    def test_parse_idr(self, raw, expected):
        """Test parsing of user-entered amounts."""
        assert parse_idr(raw) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
