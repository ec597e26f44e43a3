from __future__ import annotations

import asyncio

import requests
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from ...abi import load_erc20_abi
from ...exceptions import ChainProviderUnavailable
from ...logger import get_logger
from ...settings import Chain, ValuatorSettings
from .base import BaseBalanceAdapter, TokenBalance, TokenMetadata

logger = get_logger(__name__)


class RpcBalanceAdapter(BaseBalanceAdapter):
    """Adapter for plain JSON-RPC endpoints.

    Plain nodes cannot enumerate a wallet's tokens, so token balances are read
    with ERC-20 ``balanceOf`` over the configured token list for each chain.
    Metadata comes from the token contract itself.
    """

    def __init__(self, config: ValuatorSettings):
        super().__init__(config)
        self._metadata_cache: dict[tuple[Chain, str], TokenMetadata] = {}

    @property
    def adapter_name(self) -> str:
        return "rpc"

    async def get_native_balance(self, address: str, chain: Chain) -> int:
        w3 = self._web3(chain)
        try:
            balance = await self._rpc(
                w3.eth.get_balance, w3.to_checksum_address(address)
            )
        except (requests.exceptions.RequestException, Web3Exception, ValueError) as e:
            raise ChainProviderUnavailable(chain.value, str(e)) from e
        return int(balance)

    async def get_token_balances(
        self, address: str, chain: Chain
    ) -> list[TokenBalance]:
        w3 = self._web3(chain)
        owner = w3.to_checksum_address(address)
        tokens = self.config.tokens_for(chain)
        erc20_abi = load_erc20_abi()

        async def balance_of(token_address: str) -> TokenBalance:
            contract = w3.eth.contract(
                address=w3.to_checksum_address(token_address), abi=erc20_abi
            )
            amount = await self._rpc(contract.functions.balanceOf(owner).call)
            return TokenBalance(contract_address=token_address, raw_amount=int(amount))

        results = await asyncio.gather(
            *[balance_of(token) for token in tokens], return_exceptions=True
        )

        balances: list[TokenBalance] = []
        failures = 0
        for token, result in zip(tokens, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, BaseException):
                failures += 1
                logger.warning(
                    "Failed to fetch balance of token %s on %s: %s",
                    token,
                    chain.value,
                    result,
                )
            else:
                balances.append(result)

        if tokens and failures == len(tokens):
            raise ChainProviderUnavailable(
                chain.value, f"all {failures} token balance calls failed"
            )

        logger.debug(
            "%s: read %d of %d token balances", chain.value, len(balances), len(tokens)
        )
        return balances

    async def get_token_metadata(
        self, contract_address: str, chain: Chain
    ) -> TokenMetadata | None:
        cache_key = (chain, contract_address.lower())
        cached = self._metadata_cache.get(cache_key)
        if cached is not None:
            return cached

        w3 = self._web3(chain)
        contract = w3.eth.contract(
            address=w3.to_checksum_address(contract_address), abi=load_erc20_abi()
        )
        try:
            symbol = await self._rpc(contract.functions.symbol().call)
            decimals = await self._rpc(contract.functions.decimals().call)
            name = await self._rpc(contract.functions.name().call)
        except (BadFunctionCallOutput, ContractLogicError) as e:
            logger.debug(
                "Contract %s on %s does not expose ERC-20 metadata: %s",
                contract_address,
                chain.value,
                e,
            )
            return None

        if not symbol:
            return None

        metadata = TokenMetadata(
            symbol=str(symbol), name=str(name or symbol), decimals=int(decimals)
        )
        self._metadata_cache[cache_key] = metadata
        return metadata
