"""
Pocket Ledger - Source Package

The ledger engine behind a personal finance tracker: an append-only
transaction log, balances projected from it for pockets and goals,
transfers between them, and reconciliation when a pocket is deleted.

DESIGN PRINCIPLES:
1. Transactions are the only persisted fact; balances are always derived
2. Reject before mutating - no partial state
3. Deleting a pocket never silently destroys value elsewhere
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
