from __future__ import annotations

from typing import Any

import requests
from web3.exceptions import Web3Exception
from web3.types import RPCEndpoint

from ...exceptions import ChainProviderUnavailable
from ...logger import get_logger
from ...settings import Chain, ValuatorSettings
from ...units import parse_raw_amount
from .base import BaseBalanceAdapter, TokenBalance, TokenMetadata

logger = get_logger(__name__)

# Guards against a provider that keeps returning page keys
MAX_TOKEN_BALANCE_PAGES = 20


class AlchemyBalanceAdapter(BaseBalanceAdapter):
    """Adapter for Alchemy's enhanced JSON-RPC API.

    Uses ``eth_getBalance`` for the native coin, ``alchemy_getTokenBalances``
    to discover every ERC-20 held by the wallet and
    ``alchemy_getTokenMetadata`` for symbol/name/decimals.
    """

    def __init__(self, config: ValuatorSettings):
        super().__init__(config)
        if config.alchemy_api_key is None and not config.rpc_urls:
            raise ValueError("alchemy_api_key is required for the Alchemy adapter")

    @property
    def adapter_name(self) -> str:
        return "alchemy"

    async def _request(self, chain: Chain, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC request and return its ``result``.

        Raises:
            ChainProviderUnavailable: On transport errors, HTTP errors or a
                JSON-RPC error payload.
        """
        w3 = self._web3(chain)
        logger.debug("Calling %s on %s", method, chain.value)
        try:
            response = await self._rpc(
                w3.provider.make_request, RPCEndpoint(method), params
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 403:
                raise ChainProviderUnavailable(
                    chain.value, "API key does not support this chain"
                ) from e
            raise ChainProviderUnavailable(chain.value, f"HTTP error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ChainProviderUnavailable(chain.value, f"Network error: {e}") from e
        except Web3Exception as e:
            raise ChainProviderUnavailable(chain.value, f"Provider error: {e}") from e

        error = response.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ChainProviderUnavailable(chain.value, str(message))
        return response.get("result")

    async def get_native_balance(self, address: str, chain: Chain) -> int:
        result = await self._request(chain, "eth_getBalance", [address, "latest"])
        try:
            return parse_raw_amount(result or "0x0")
        except ValueError as e:
            raise ChainProviderUnavailable(
                chain.value, f"Invalid native balance: {result!r}"
            ) from e

    async def get_token_balances(
        self, address: str, chain: Chain
    ) -> list[TokenBalance]:
        balances: list[TokenBalance] = []
        page_key: str | None = None

        for _ in range(MAX_TOKEN_BALANCE_PAGES):
            params: list[Any] = [address, "erc20"]
            if page_key:
                params.append({"pageKey": page_key})
            result = await self._request(chain, "alchemy_getTokenBalances", params)
            if not isinstance(result, dict):
                raise ChainProviderUnavailable(
                    chain.value, f"Invalid token balance response: {result!r}"
                )

            for entry in result.get("tokenBalances") or []:
                parsed = self._parse_token_balance(entry, chain)
                if parsed is not None:
                    balances.append(parsed)

            page_key = result.get("pageKey")
            if not page_key:
                break
        else:
            logger.warning(
                "Stopped paging token balances on %s after %d pages",
                chain.value,
                MAX_TOKEN_BALANCE_PAGES,
            )

        logger.debug("%s: found %d token balances", chain.value, len(balances))
        return balances

    @staticmethod
    def _parse_token_balance(entry: Any, chain: Chain) -> TokenBalance | None:
        if not isinstance(entry, dict) or entry.get("error"):
            logger.debug("Skipping token balance entry on %s: %r", chain.value, entry)
            return None
        contract = entry.get("contractAddress")
        if not contract:
            return None
        try:
            amount = parse_raw_amount(entry.get("tokenBalance") or "0x0")
        except ValueError:
            logger.debug(
                "Skipping unparseable balance for %s on %s: %r",
                contract,
                chain.value,
                entry.get("tokenBalance"),
            )
            return None
        return TokenBalance(contract_address=contract, raw_amount=amount)

    async def get_token_metadata(
        self, contract_address: str, chain: Chain
    ) -> TokenMetadata | None:
        result = await self._request(
            chain, "alchemy_getTokenMetadata", [contract_address]
        )
        if not isinstance(result, dict):
            return None

        symbol = result.get("symbol")
        decimals = result.get("decimals")
        if not symbol or decimals is None:
            return None

        try:
            decimals_int = int(decimals)
        except (TypeError, ValueError):
            return None

        return TokenMetadata(
            symbol=str(symbol),
            name=str(result.get("name") or symbol),
            decimals=decimals_int,
        )
