"""Error taxonomy for portfolio valuation."""

from __future__ import annotations


class PortfolioValuatorError(Exception):
    """Base class for all portfolio-valuator errors."""


class InvalidAddress(PortfolioValuatorError, ValueError):
    """Raised when a wallet address does not match the chain's address format.

    Surfaced to the caller before any provider is contacted.
    """

    def __init__(self, address: str, chain: str | None = None):
        self.address = address
        self.chain = chain
        where = f" for chain {chain}" if chain else ""
        super().__init__(f"Invalid wallet address{where}: {address!r}")


class TokenMetadataUnresolved(PortfolioValuatorError):
    """Symbol/name/decimals lookup failed for a token contract.

    Non-fatal: the token is dropped and the chain continues.
    """

    def __init__(self, contract_address: str, chain: str, reason: str):
        self.contract_address = contract_address
        self.chain = chain
        self.reason = reason
        super().__init__(
            f"Unresolved metadata for {contract_address} on {chain}: {reason}"
        )


class ChainProviderUnavailable(PortfolioValuatorError):
    """The balance provider could not serve a chain.

    Non-fatal: the chain contributes no balances and is reported as skipped.
    """

    def __init__(self, chain: str, reason: str):
        self.chain = chain
        self.reason = reason
        super().__init__(f"Provider unavailable for chain {chain}: {reason}")


class PriceProviderUnavailable(PortfolioValuatorError):
    """The live price provider failed; callers fall back to static prices."""
