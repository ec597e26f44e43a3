from __future__ import annotations

from .base import BasePriceAdapter, PricePoint, PriceQuote
from .coingecko import CoinGeckoPriceAdapter
from .fallback import FallbackPriceAdapter

__all__ = [
    "BasePriceAdapter",
    "CoinGeckoPriceAdapter",
    "FallbackPriceAdapter",
    "PricePoint",
    "PriceQuote",
]
