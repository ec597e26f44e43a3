from __future__ import annotations

from decimal import Decimal

# Significant digits for adding token amounts without rounding: a uint256
# has at most 78 digits, ERC-20 decimals is a uint8 (<= 255), plus carry room
DECIMAL_PRECISION = 400


def parse_raw_amount(value: int | str) -> int:
    """Parse a raw token amount into an integer.

    Providers report amounts as integers, decimal strings or 0x-prefixed hex
    strings (JSON-RPC quantities). An empty hex quantity (``"0x"``) is zero.

    Raises:
        ValueError: If the value cannot be parsed or is negative.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid raw amount: {value!r}")
    if isinstance(value, int):
        amount = value
    else:
        text = str(value).strip()
        if text.lower().startswith("0x"):
            amount = int(text, 16) if len(text) > 2 else 0
        else:
            amount = int(text)
    if amount < 0:
        raise ValueError(f"Raw amount must be non-negative: {value!r}")
    return amount


def to_decimal_units(raw_amount: int, decimals: int) -> Decimal:
    """Convert a raw integer amount to token units.

    Args:
        raw_amount: Amount in the token's smallest unit.
        decimals: Number of decimal places of the token.

    Returns:
        ``raw_amount / 10**decimals`` as a Decimal.

    Notes:
        - The result is assembled from the digits of ``raw_amount`` with
          exponent ``-decimals``. No arithmetic context is involved, so amounts
          of any length are represented without rounding.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative: {decimals}")
    if raw_amount < 0:
        raise ValueError(f"Raw amount must be non-negative: {raw_amount}")
    digits = Decimal(raw_amount).as_tuple().digits
    return Decimal((0, digits, -decimals))
