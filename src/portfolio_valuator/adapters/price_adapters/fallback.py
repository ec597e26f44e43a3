from __future__ import annotations

from ...constants import FALLBACK_PRICES
from .base import BasePriceAdapter, PriceQuote


class FallbackPriceAdapter(BasePriceAdapter):
    """Static default-price table used when the live provider is unavailable."""

    @property
    def adapter_name(self) -> str:
        return "fallback"

    async def fetch_prices(self, symbols: set[str]) -> dict[str, PriceQuote]:
        return {
            symbol: PriceQuote(
                symbol=symbol,
                usd_price=FALLBACK_PRICES[symbol]["usd_price"],
                change_24h_percent=FALLBACK_PRICES[symbol]["change_24h_percent"],
            )
            for symbol in sorted(symbols)
            if symbol in FALLBACK_PRICES
        }
