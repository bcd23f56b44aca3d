# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Numeric primitives shared by the aggregators.

Undefined ratios (margin with zero revenue, growth with zero prior units)
are never represented as NaN or infinity. They are returned as ``None``, or
as the ``NEW`` sentinel for growth from nothing, and the presentation layer
decides how to render them.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal, Optional, Union

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

NEW: Literal["new"] = "new"
"""Growth-rate sentinel: the previous period had no activity."""

GrowthRate = Union[Decimal, Literal["new"], None]


def to_decimal(value) -> Decimal:
    """
    Convert a number-like value to Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather
    than its binary expansion.

    Raises
    ------
    ValueError
        If the value is not numeric (or is NaN / infinite).
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Invalid numeric value: {value!r}") from exc

    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def cents_to_decimal(cents: int) -> Decimal:
    """Rebuild a monetary amount from integer cents."""
    return (Decimal(int(cents)) / 100).quantize(CENT)


def decimal_to_cents(amount: Decimal) -> int:
    """Convert a monetary amount to integer cents (half-up rounding)."""
    cents = (to_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def margin_pct(profit: Decimal, revenue: Decimal) -> Optional[Decimal]:
    """
    Profit margin in percent, or None when revenue is zero.

    ``margin = profit / revenue * 100``
    """
    if revenue == ZERO:
        return None
    return profit / revenue * HUNDRED


def growth_rate(current: Decimal, previous: Decimal) -> GrowthRate:
    """
    Period-over-period growth in percent.

    Returns
    -------
    Decimal
        ``(current - previous) / previous * 100`` when previous is non-zero.
    "new"
        When previous is zero and current is positive.
    None
        When both are zero (no activity at all).
    """
    if previous == ZERO:
        if current == ZERO:
            return None
        return NEW
    return (current - previous) / previous * HUNDRED


def mean(values: list[Decimal]) -> Optional[Decimal]:
    """Arithmetic mean of Decimals, or None for an empty list."""
    if not values:
        return None
    return sum(values, ZERO) / Decimal(len(values))
