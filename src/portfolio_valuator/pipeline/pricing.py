"""Price fetching with a one-shot static fallback."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable

from ..adapters.price_adapters import CoinGeckoPriceAdapter, FallbackPriceAdapter
from ..adapters.price_adapters.base import BasePriceAdapter, PriceQuote
from ..exceptions import PriceProviderUnavailable
from ..logger import get_logger
from .context import PipelineContext

logger = get_logger(__name__)

SOURCE_LIVE = "live"
SOURCE_FALLBACK = "fallback"
SOURCE_NONE = "none"


@dataclass
class PriceFetchResult:
    quotes: dict[str, PriceQuote] = field(default_factory=dict)
    source: str = SOURCE_NONE


async def fetch_prices(
    symbols: Iterable[str],
    primary: BasePriceAdapter,
    fallback: BasePriceAdapter | None = None,
    *,
    timeout: float | None = None,
) -> PriceFetchResult:
    """Fetch quotes for the unique set of ``symbols``.

    The primary adapter is called once with the whole batch. If it is
    unavailable or exceeds ``timeout``, the fallback adapter is consulted once.
    Symbols neither adapter can price are absent from the result.
    """
    unique = {symbol.upper() for symbol in symbols if symbol}
    if not unique:
        return PriceFetchResult()

    logger.info(
        "Fetching prices for %d symbol(s) via %s...", len(unique), primary.adapter_name
    )
    try:
        async with asyncio.timeout(timeout):
            quotes = await primary.fetch_prices(unique)
        return PriceFetchResult(quotes=quotes, source=SOURCE_LIVE)
    except PriceProviderUnavailable as e:
        reason = str(e)
    except TimeoutError:
        reason = f"timed out after {timeout}s"

    if fallback is None:
        logger.warning("Price provider unavailable (%s); no fallback configured", reason)
        return PriceFetchResult()

    logger.warning(
        "Price provider unavailable (%s); using %s prices", reason, fallback.adapter_name
    )
    quotes = await fallback.fetch_prices(unique)
    missing = unique - quotes.keys()
    if missing:
        logger.warning(
            "No fallback price for %s; valuing at 0", ", ".join(sorted(missing))
        )
    return PriceFetchResult(quotes=quotes, source=SOURCE_FALLBACK)


async def price_assets(ctx: PipelineContext) -> None:
    """Price every symbol held in the collected balances.

    Args:
        ctx: Pipeline context containing state and raw balances

    Sets the quotes and their source in the context.
    """
    s = ctx.state.settings
    log = ctx.state.logger

    symbols = {balance.symbol.upper() for balance in ctx.balances_required}

    primary = CoinGeckoPriceAdapter(s)
    fallback = FallbackPriceAdapter(s) if s.price_fallback_enabled else None

    result = await fetch_prices(
        symbols, primary, fallback, timeout=s.price_timeout_seconds
    )
    log.info(
        "Priced %d of %d symbol(s) (%s)", len(result.quotes), len(symbols), result.source
    )

    ctx.prices = result.quotes
    ctx.price_source = result.source
