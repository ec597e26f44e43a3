from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...settings import ValuatorSettings


@dataclass(frozen=True)
class PriceQuote:
    """USD price and 24h change for one symbol."""

    symbol: str
    usd_price: float
    change_24h_percent: float


@dataclass(frozen=True)
class PricePoint:
    """One historical USD price sample."""

    timestamp: datetime
    usd_price: float


def make_quote(symbol: str, usd_price: object, change: object) -> PriceQuote | None:
    """Build a PriceQuote from loosely typed provider values.

    Returns None when the price is missing, non-numeric, non-finite or
    negative. A missing or non-finite 24h change becomes 0.
    """
    try:
        price = float(usd_price)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price < 0:
        return None

    try:
        change_pct = float(change) if change is not None else 0.0  # type: ignore[arg-type]
    except (TypeError, ValueError):
        change_pct = 0.0
    if not math.isfinite(change_pct):
        change_pct = 0.0

    return PriceQuote(symbol=symbol, usd_price=price, change_24h_percent=change_pct)


class BasePriceAdapter(ABC):
    """Abstract base class for price adapters."""

    def __init__(self, config: ValuatorSettings):
        """Initialize the adapter with configuration."""
        self.config = config

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Return the name of this adapter."""
        ...

    @abstractmethod
    async def fetch_prices(self, symbols: set[str]) -> dict[str, PriceQuote]:
        """Fetch quotes for the given (uppercase) symbols.

        Symbols the provider cannot price are omitted from the result.
        """
        ...
