"""Validation package."""

from pocket_ledger.validation.guard import LedgerGuard

__all__ = ["LedgerGuard"]
