"""Transaction query and report package."""

from pocket_ledger.queries.reports import (
    TransactionFilters,
    categories,
    filter_transactions,
    recent_transactions,
    summarize,
    totals_by_category,
)

__all__ = [
    "TransactionFilters",
    "categories",
    "filter_transactions",
    "recent_transactions",
    "summarize",
    "totals_by_category",
]
