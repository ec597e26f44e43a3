from __future__ import annotations

import pytest

from portfolio_valuator.adapters.price_adapters import FallbackPriceAdapter
from portfolio_valuator.settings import ValuatorSettings


@pytest.mark.asyncio
async def test_returns_only_requested_known_symbols():
    adapter = FallbackPriceAdapter(ValuatorSettings())

    quotes = await adapter.fetch_prices({"ETH", "DAI", "UNKNOWN"})

    assert set(quotes) == {"ETH", "DAI"}
    assert quotes["ETH"].usd_price == 2600.0
    assert quotes["ETH"].change_24h_percent == 1.5
    assert quotes["DAI"].usd_price == 1.0


@pytest.mark.asyncio
async def test_empty_request_returns_nothing():
    adapter = FallbackPriceAdapter(ValuatorSettings())

    assert await adapter.fetch_prices(set()) == {}
