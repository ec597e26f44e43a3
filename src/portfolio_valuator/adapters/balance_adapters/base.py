from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import backoff
from eth_typing import URI
from web3 import Web3
from web3.exceptions import ProviderConnectionError

from ...settings import Chain, ValuatorSettings
from ...units import parse_raw_amount


@dataclass(frozen=True)
class TokenBalance:
    """Raw token balance as reported by a provider."""

    contract_address: str
    raw_amount: int


@dataclass(frozen=True)
class TokenMetadata:
    """Token metadata as reported by a provider."""

    symbol: str
    name: str
    decimals: int


@dataclass(frozen=True)
class RawBalance:
    """A native or token balance on one chain, before valuation."""

    contract_address: str | None
    raw_amount: int
    symbol: str
    name: str
    decimals: int
    chain: Chain

    def __post_init__(self) -> None:
        object.__setattr__(self, "raw_amount", parse_raw_amount(self.raw_amount))
        if self.decimals < 0:
            raise ValueError(
                f"decimals must be non-negative for {self.symbol}: {self.decimals}"
            )
        if not self.symbol:
            raise ValueError("symbol must not be empty")


class BaseBalanceAdapter(ABC):
    """Abstract base class for balance adapters."""

    def __init__(self, config: ValuatorSettings):
        """Initialize the adapter with configuration.

        Args:
            config: Valuator configuration
        """
        self.config = config
        self._rpc_sem = asyncio.Semaphore(config.max_calls)
        self._rpc_delay = config.rpc_delay
        self._rpc_jitter = config.rpc_jitter
        self._web3_by_chain: dict[Chain, Web3] = {}

    def _web3(self, chain: Chain) -> Web3:
        """Return the (cached) web3 client for ``chain``."""
        w3 = self._web3_by_chain.get(chain)
        if w3 is None:
            w3 = Web3(
                Web3.HTTPProvider(
                    URI(self.config.rpc_url_for(chain)),
                    request_kwargs={"timeout": self.config.chain_timeout_seconds},
                )
            )
            self._web3_by_chain[chain] = w3
        return w3

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Return the name of this adapter."""
        ...

    @abstractmethod
    async def get_native_balance(self, address: str, chain: Chain) -> int:
        """Return the raw native-coin balance of ``address`` on ``chain``."""
        ...

    @abstractmethod
    async def get_token_balances(
        self, address: str, chain: Chain
    ) -> list[TokenBalance]:
        """Return raw token balances held by ``address`` on ``chain``."""
        ...

    @abstractmethod
    async def get_token_metadata(
        self, contract_address: str, chain: Chain
    ) -> TokenMetadata | None:
        """Return metadata for a token contract, or None when not found."""
        ...

    @backoff.on_exception(
        backoff.expo, ProviderConnectionError, max_time=30, jitter=backoff.full_jitter
    )
    async def _rpc(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Throttle + backoff a single blocking provider call."""
        async with self._rpc_sem:
            try:
                return await asyncio.to_thread(fn, *args, **kwargs)
            finally:
                delay = self._rpc_delay + random.random() * self._rpc_jitter
                if delay > 0:
                    await asyncio.sleep(delay)
