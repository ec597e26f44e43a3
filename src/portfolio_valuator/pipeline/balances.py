"""Balance collection across chains."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..adapters.balance_adapters import get_adapter_class
from ..adapters.balance_adapters.base import (
    BaseBalanceAdapter,
    RawBalance,
    TokenBalance,
    TokenMetadata,
)
from ..addresses import canonical_address, validate_wallet_address
from ..exceptions import ChainProviderUnavailable, TokenMetadataUnresolved
from ..logger import get_logger
from ..settings import Chain
from .context import PipelineContext

logger = get_logger(__name__)


@dataclass
class BalanceFetchResult:
    """Balances from every reachable chain plus the chains that were skipped."""

    wallet_address: str
    balances: list[RawBalance] = field(default_factory=list)
    chain_errors: dict[Chain, str] = field(default_factory=dict)


def _dedupe_chains(chains: Iterable[Chain]) -> list[Chain]:
    seen: set[Chain] = set()
    ordered: list[Chain] = []
    for chain in chains:
        chain = Chain(chain)
        if chain not in seen:
            seen.add(chain)
            ordered.append(chain)
    return ordered


def _to_raw_balance(
    token: TokenBalance,
    metadata: TokenMetadata | BaseException | None,
    chain: Chain,
) -> RawBalance:
    """Combine a token balance with its metadata.

    Raises:
        TokenMetadataUnresolved: If the lookup failed, found nothing or
            returned unusable values.
    """
    if isinstance(metadata, BaseException):
        raise TokenMetadataUnresolved(
            token.contract_address, chain.value, str(metadata) or type(metadata).__name__
        ) from metadata
    if metadata is None:
        raise TokenMetadataUnresolved(
            token.contract_address, chain.value, "metadata not found"
        )
    try:
        return RawBalance(
            contract_address=token.contract_address,
            raw_amount=token.raw_amount,
            symbol=metadata.symbol.strip(),
            name=metadata.name,
            decimals=metadata.decimals,
            chain=chain,
        )
    except ValueError as e:
        raise TokenMetadataUnresolved(token.contract_address, chain.value, str(e)) from e


async def fetch_chain_balances(
    adapter: BaseBalanceAdapter,
    wallet_address: str,
    chain: Chain,
    allowlist: set[str] | frozenset[str] = frozenset(),
) -> list[RawBalance]:
    """Fetch the native and token balances of ``wallet_address`` on one chain.

    Zero balances are skipped. Tokens whose metadata cannot be resolved are
    dropped without failing the chain. When ``allowlist`` is non-empty only
    token contracts it contains (lower-cased) are kept.

    Raises:
        ChainProviderUnavailable: If the provider cannot serve the chain.
    """
    native_raw = await adapter.get_native_balance(wallet_address, chain)
    token_balances = await adapter.get_token_balances(wallet_address, chain)

    balances: list[RawBalance] = []
    if native_raw > 0:
        native = chain.native_asset
        balances.append(
            RawBalance(
                contract_address=None,
                raw_amount=native_raw,
                symbol=native["symbol"],
                name=native["name"],
                decimals=native["decimals"],
                chain=chain,
            )
        )

    tokens = [token for token in token_balances if token.raw_amount > 0]
    if allowlist:
        allowed = [
            t for t in tokens if canonical_address(t.contract_address) in allowlist
        ]
        if len(allowed) != len(tokens):
            logger.debug(
                "%s: dropped %d tokens not on the allowlist",
                chain.value,
                len(tokens) - len(allowed),
            )
        tokens = allowed

    metadata_results = await asyncio.gather(
        *[adapter.get_token_metadata(t.contract_address, chain) for t in tokens],
        return_exceptions=True,
    )

    for token, metadata in zip(tokens, metadata_results):
        if isinstance(metadata, BaseException) and not isinstance(metadata, Exception):
            raise metadata
        try:
            balances.append(_to_raw_balance(token, metadata, chain))
        except TokenMetadataUnresolved as e:
            logger.warning("%s; dropping token", e)

    logger.debug(
        "%s: %d non-zero balances (%d tokens reported)",
        chain.value,
        len(balances),
        len(token_balances),
    )
    return balances


async def fetch_balances(
    adapter: BaseBalanceAdapter,
    wallet_address: str,
    chains: Iterable[Chain],
    *,
    chain_timeout: float | None = None,
    allowlists: Mapping[Chain, set[str]] | None = None,
) -> BalanceFetchResult:
    """Fetch balances on every chain concurrently and join the results.

    A chain whose provider fails or exceeds ``chain_timeout`` contributes no
    balances; its reason is recorded in ``chain_errors``.

    Raises:
        InvalidAddress: If ``wallet_address`` is malformed. No chain is queried.
    """
    requested = _dedupe_chains(chains)
    address = validate_wallet_address(wallet_address, requested)
    allowlists = allowlists or {}

    async def _fetch(chain: Chain) -> list[RawBalance]:
        async with asyncio.timeout(chain_timeout):
            return await fetch_chain_balances(
                adapter, address, chain, allowlists.get(chain, frozenset())
            )

    results = await asyncio.gather(
        *[_fetch(chain) for chain in requested], return_exceptions=True
    )

    outcome = BalanceFetchResult(wallet_address=address)
    for chain, result in zip(requested, results):
        if isinstance(result, ChainProviderUnavailable):
            reason = result.reason
        elif isinstance(result, TimeoutError):
            reason = f"timed out after {chain_timeout}s"
        elif isinstance(result, Exception):
            reason = str(result) or type(result).__name__
        elif isinstance(result, BaseException):
            raise result
        else:
            outcome.balances.extend(result)
            continue

        logger.warning("Skipping chain %s: %s", chain.value, reason)
        outcome.chain_errors[chain] = reason

    return outcome


async def collect_balances(ctx: PipelineContext) -> None:
    """Collect balances for the context's wallet on all requested chains.

    Args:
        ctx: Pipeline context containing state

    Sets the raw balances, skipped chains and checksummed address in the context.
    """
    s = ctx.state.settings
    log = ctx.state.logger

    chains = _dedupe_chains(ctx.chains)
    address = validate_wallet_address(ctx.wallet_address, chains)

    adapter = get_adapter_class(s.balance_provider)(s)
    log.info(
        "Fetching balances for %s on %d chain(s) via %s...",
        address,
        len(chains),
        adapter.adapter_name,
    )

    result = await fetch_balances(
        adapter,
        address,
        chains,
        chain_timeout=s.chain_timeout_seconds,
        allowlists={chain: s.allowlist_for(chain) for chain in chains},
    )

    if result.chain_errors:
        log.warning(
            "Partial data: %d of %d chain(s) skipped (%s)",
            len(result.chain_errors),
            len(chains),
            ", ".join(chain.value for chain in result.chain_errors),
        )
    log.info("Collected %d raw balances", len(result.balances))

    ctx.wallet_address = result.wallet_address
    ctx.chains = chains
    ctx.balances = result.balances
    ctx.chain_errors = result.chain_errors
