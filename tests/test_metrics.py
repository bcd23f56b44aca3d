from decimal import Decimal

import pytest

from smb_cashbook.metrics import (
    NEW,
    cents_to_decimal,
    decimal_to_cents,
    growth_rate,
    margin_pct,
    mean,
    to_decimal,
)


def test_to_decimal_accepts_numbers_and_numeric_text() -> None:
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal(" 12.50 ") == Decimal("12.50")
    assert to_decimal(Decimal("7")) == Decimal("7")


@pytest.mark.parametrize("value", ["abc", "", None, True, float("nan"), "inf"])
def test_to_decimal_rejects_non_numeric_values(value) -> None:
    with pytest.raises(ValueError):
        to_decimal(value)


def test_cents_conversion_rounds_half_up() -> None:
    assert decimal_to_cents(Decimal("10.005")) == 1001
    assert decimal_to_cents(Decimal("0.01")) == 1
    assert cents_to_decimal(1001) == Decimal("10.01")


def test_margin_is_undefined_without_revenue() -> None:
    assert margin_pct(Decimal("30"), Decimal("80")) == Decimal("37.5")
    assert margin_pct(Decimal("0"), Decimal("0")) is None


def test_growth_rate_cases() -> None:
    assert growth_rate(Decimal("15"), Decimal("10")) == Decimal("50")
    assert growth_rate(Decimal("0"), Decimal("4")) == Decimal("-100")
    assert growth_rate(Decimal("3"), Decimal("0")) == NEW
    assert growth_rate(Decimal("0"), Decimal("0")) is None


def test_mean() -> None:
    assert mean([Decimal("10"), Decimal("20")]) == Decimal("15")
    assert mean([]) is None
