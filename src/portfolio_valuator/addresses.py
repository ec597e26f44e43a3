"""Wallet address validation."""

from __future__ import annotations

import re
from typing import Sequence

from web3 import Web3

from .constants import EVM_ADDRESS_PATTERN
from .exceptions import InvalidAddress
from .settings import Chain

_EVM_ADDRESS_RE = re.compile(EVM_ADDRESS_PATTERN)


def validate_wallet_address(address: str, chains: Sequence[Chain]) -> str:
    """Validate ``address`` for the given chains and return its checksummed form.

    All supported chains are EVM chains and share the ``0x`` + 40 hex format,
    so one check covers every chain. Mixed-case input is accepted without
    checksum verification.

    Raises:
        InvalidAddress: If the address does not match the format.
    """
    if not isinstance(address, str) or not _EVM_ADDRESS_RE.match(address.strip()):
        chain = chains[0].value if chains else None
        raise InvalidAddress(str(address), chain)
    return Web3.to_checksum_address(address.strip().lower())


def canonical_address(address: str) -> str:
    """Lower-cased form used for address comparisons."""
    return address.lower()
