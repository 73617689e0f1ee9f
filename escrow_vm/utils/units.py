"""Nano-unit conversion (1 coin = 10**9 nano), exact via Decimal."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

NANO = 10**9

Number = Union[int, str, Decimal]


def to_nano(amount: Number) -> int:
    """
    Convert a human amount ("1.25", 5, Decimal("0.05")) to integer nano units.

    Floats are refused; more than 9 fractional digits is an error.
    """
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeError("amount must be int, str or Decimal")
    try:
        d = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValueError(f"invalid amount: {amount!r}") from e
    scaled = d * NANO
    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount has more than 9 fractional digits: {amount!r}")
    return int(scaled)


def from_nano(value: int) -> str:
    """Render nano units as a plain decimal string ("1.5", "0.05", "3")."""
    d = Decimal(int(value)) / NANO
    s = format(d, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


__all__ = ["NANO", "to_nano", "from_nano"]
