"""Money helpers: Decimal coercion and plain-notation output."""
from __future__ import annotations

from decimal import Decimal

import pytest

from src.domains.disaster_events.money import decimal_sum, format_decimal, to_decimal


@pytest.mark.parametrize("value, expected", [
    (Decimal("300.00"), "300"),
    (Decimal("12.50"), "12.5"),
    (Decimal("0"), "0"),
    (Decimal("0.000"), "0"),
    (Decimal("0.0000001"), "0.0000001"),
    (Decimal("1E-9"), "0.000000001"),
    (Decimal("3E+2"), "300"),
    (Decimal("123456789012345678901234.5"), "123456789012345678901234.5"),
    (Decimal("-4.10"), "-4.1"),
])
def test_format_decimal_never_uses_exponent(value, expected) -> None:
    assert format_decimal(value) == expected


def test_sum_of_small_amounts_stays_plain() -> None:
    total = decimal_sum(["0.00000005", None, "", 0.00000005])

    assert format_decimal(total) == "0.0000001"
    assert to_decimal("  ") == Decimal("0")
