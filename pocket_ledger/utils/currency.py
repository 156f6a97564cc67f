"""
Currency formatting for Indonesian Rupiah.

IDR is shown without decimal places and with "." as the
thousands separator, e.g. "Rp 1.250.000".
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union


Number = Union[Decimal, int, float, str]

_PREFIX = re.compile(r"rp\s?", re.IGNORECASE)


def _to_whole(amount: Number) -> int:
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _group_thousands(value: int, separator: str) -> str:
    return f"{value:,}".replace(",", separator)


def format_idr(amount: Number) -> str:
    """Format an amount for display, e.g. 1000000 -> "Rp 1.000.000"."""
    return f"Rp {_group_thousands(_to_whole(amount), '.')}"


def format_idr_input(amount: Number) -> str:
    """Format an amount for an input field, e.g. 1000000 -> "1,000,000"."""
    whole = _to_whole(amount)
    if whole == 0:
        return ""
    return _group_thousands(whole, ",")


def parse_idr(value: str) -> Decimal:
    """
    Parse a user-entered IDR string.

    Strips the "Rp" prefix and both kinds of thousands separator.
    Anything unparseable becomes zero.
    """
    if not value:
        return Decimal("0")

    cleaned = _PREFIX.sub("", value).replace(",", "").replace(".", "").strip()
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
