"""Shared helpers."""

from pocket_ledger.utils.currency import format_idr, format_idr_input, parse_idr

__all__ = ["format_idr", "format_idr_input", "parse_idr"]
