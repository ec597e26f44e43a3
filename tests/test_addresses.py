from __future__ import annotations

import pytest

from portfolio_valuator.addresses import canonical_address, validate_wallet_address
from portfolio_valuator.exceptions import InvalidAddress
from portfolio_valuator.settings import Chain

WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
WALLET_CHECKSUM = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


def test_validate_returns_checksummed_address():
    assert validate_wallet_address(WALLET, [Chain.MAINNET]) == WALLET_CHECKSUM


def test_validate_accepts_any_case_and_whitespace():
    mixed = "0x" + WALLET[2:].upper()
    assert validate_wallet_address(f"  {mixed} ", []) == WALLET_CHECKSUM


@pytest.mark.parametrize(
    "address",
    [
        "",
        "0x123",
        WALLET[2:],
        WALLET + "00",
        "0x" + "g" * 40,
        "not-an-address",
    ],
)
def test_validate_rejects_malformed(address):
    with pytest.raises(InvalidAddress) as exc_info:
        validate_wallet_address(address, [Chain.POLYGON])
    assert exc_info.value.chain == "polygon"
    assert isinstance(exc_info.value, ValueError)


def test_canonical_address_lowercases():
    assert canonical_address(WALLET_CHECKSUM) == WALLET
