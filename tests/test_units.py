from __future__ import annotations

from decimal import Context, Decimal

import pytest

from portfolio_valuator.units import (
    DECIMAL_PRECISION,
    parse_raw_amount,
    to_decimal_units,
)


def test_parse_raw_amount_int_and_decimal_string():
    assert parse_raw_amount(123) == 123
    assert parse_raw_amount("5000000") == 5_000_000


def test_parse_raw_amount_hex_quantity():
    assert parse_raw_amount("0x1bc16d674ec80000") == 2 * 10**18
    assert parse_raw_amount("0x0") == 0
    assert parse_raw_amount("0x") == 0


@pytest.mark.parametrize("value", [-1, "-5", "abc", True])
def test_parse_raw_amount_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_raw_amount(value)


def test_to_decimal_units_examples():
    assert to_decimal_units(2 * 10**18, 18) == Decimal(2)
    assert to_decimal_units(500_000_000, 6) == Decimal(500)
    assert to_decimal_units(1, 18) == Decimal("0.000000000000000001")
    assert to_decimal_units(42, 0) == Decimal(42)


def test_to_decimal_units_large_values_are_exact():
    raw = 123456789012345678901234567890
    assert to_decimal_units(raw, 24) == Decimal("123456.789012345678901234567890")


def test_max_uint256_keeps_every_digit():
    raw = 2**256 - 1
    amount = to_decimal_units(raw, 18)

    assert amount.as_tuple().digits == tuple(int(d) for d in str(raw))
    assert amount.as_tuple().exponent == -18


def test_decimal_conversion_round_trips():
    context = Context(prec=DECIMAL_PRECISION)
    for raw, decimals in [(0, 18), (1, 18), (10**30 + 7, 18), (999_999, 6), (5, 0)]:
        amount = to_decimal_units(raw, decimals)
        assert amount >= 0
        assert int(amount.scaleb(decimals, context=context)) == raw


def test_invalid_inputs_rejected():
    with pytest.raises(ValueError):
        to_decimal_units(1, -1)
    with pytest.raises(ValueError):
        to_decimal_units(-1, 18)
