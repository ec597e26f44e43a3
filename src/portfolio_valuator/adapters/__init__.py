from __future__ import annotations

from .balance_adapters import ADAPTER_REGISTRY, get_adapter_class
from .price_adapters import CoinGeckoPriceAdapter, FallbackPriceAdapter

__all__ = [
    "ADAPTER_REGISTRY",
    "CoinGeckoPriceAdapter",
    "FallbackPriceAdapter",
    "get_adapter_class",
]
