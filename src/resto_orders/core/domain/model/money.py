"""Integer-safe currency helpers.

Amounts are integers in the smallest currency unit (pesos have no cents).
Rounding follows ROUND_HALF_UP everywhere a fraction can appear.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

_NON_DIGITS = re.compile(r"[^\d\-]")


def to_amount(value: Decimal | int | float | str) -> int:
    """Round any numeric value to an integer amount."""
    try:
        dec = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"not_a_number: {value!r}") from e
    return int(dec.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_total(unit_price: int, quantity: int) -> int:
    return unit_price * quantity


def sum_amounts(values: Iterable[int]) -> int:
    total = 0
    for v in values:
        total += v
    return total


def percentage_of(amount: int, percent: Decimal | int | float | str) -> int:
    return to_amount(Decimal(amount) * Decimal(str(percent)) / Decimal(100))


def clamp_non_negative(amount: int) -> int:
    return amount if amount > 0 else 0


def format_amount(amount: int, symbol: str = "$") -> str:
    """45000 -> '$ 45.000' (dot as thousands separator)."""
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    if not symbol:
        return f"{sign}{grouped}"
    return f"{sign}{symbol} {grouped}"


def parse_amount(raw: str | int) -> int:
    """Inverse of format_amount; tolerates symbols, spaces and separators.

    A trailing ',dd' decimal part is rounded rather than read as thousands.
    """
    if isinstance(raw, int):
        return raw
    text = raw.strip()
    if not text:
        raise ValueError("empty_amount")
    decimals = ""
    head, sep, tail = text.rpartition(",")
    if sep and len(tail) in (1, 2) and tail.isdigit():
        text, decimals = head, tail
    digits = _NON_DIGITS.sub("", text)
    if digits in ("", "-"):
        raise ValueError(f"not_an_amount: {raw!r}")
    if decimals:
        return to_amount(f"{digits}.{decimals}")
    return int(digits)
