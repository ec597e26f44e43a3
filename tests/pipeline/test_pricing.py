from __future__ import annotations

import asyncio
import logging

import pytest

from portfolio_valuator.adapters.balance_adapters.base import RawBalance
from portfolio_valuator.adapters.price_adapters import FallbackPriceAdapter
from portfolio_valuator.adapters.price_adapters.base import BasePriceAdapter, PriceQuote
from portfolio_valuator.exceptions import PriceProviderUnavailable
from portfolio_valuator.pipeline import pricing as pipeline_pricing
from portfolio_valuator.pipeline.context import PipelineContext
from portfolio_valuator.pipeline.pricing import fetch_prices
from portfolio_valuator.settings import Chain, ValuatorSettings
from portfolio_valuator.state import AppState


class RecordingPriceAdapter(BasePriceAdapter):
    def __init__(
        self,
        config: ValuatorSettings,
        prices: dict[str, float] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        super().__init__(config)
        self.prices = prices or {}
        self.error = error
        self.delay = delay
        self.calls: list[set[str]] = []

    @property
    def adapter_name(self) -> str:
        return "recording"

    async def fetch_prices(self, symbols: set[str]) -> dict[str, PriceQuote]:
        self.calls.append(set(symbols))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {
            s: PriceQuote(symbol=s, usd_price=self.prices[s], change_24h_percent=0.0)
            for s in symbols
            if s in self.prices
        }


@pytest.fixture
def config():
    return ValuatorSettings()


@pytest.mark.asyncio
async def test_symbols_deduplicated_in_single_call(config):
    primary = RecordingPriceAdapter(config, prices={"ETH": 2500.0, "USDC": 1.0})

    result = await fetch_prices(["ETH", "eth", "USDC", "ETH"], primary)

    assert primary.calls == [{"ETH", "USDC"}]
    assert set(result.quotes) == {"ETH", "USDC"}
    assert result.source == "live"


@pytest.mark.asyncio
async def test_unpriced_symbols_omitted(config):
    primary = RecordingPriceAdapter(config, prices={"ETH": 2500.0})

    result = await fetch_prices(["ETH", "OBSCURE"], primary)

    assert set(result.quotes) == {"ETH"}


@pytest.mark.asyncio
async def test_provider_failure_uses_fallback_once(config):
    primary = RecordingPriceAdapter(
        config, error=PriceProviderUnavailable("HTTP 503")
    )
    fallback = RecordingPriceAdapter(config, prices={"ETH": 2600.0})

    result = await fetch_prices(["ETH", "FOO"], primary, fallback)

    assert len(primary.calls) == 1
    assert fallback.calls == [{"ETH", "FOO"}]
    assert result.source == "fallback"
    assert result.quotes["ETH"].usd_price == 2600.0
    assert "FOO" not in result.quotes


@pytest.mark.asyncio
async def test_static_fallback_table(config):
    primary = RecordingPriceAdapter(config, error=PriceProviderUnavailable("down"))

    result = await fetch_prices(
        ["ETH", "USDC", "NOPE"], primary, FallbackPriceAdapter(config)
    )

    assert result.quotes["ETH"].usd_price == 2600.0
    assert result.quotes["USDC"].usd_price == 1.0
    assert set(result.quotes) == {"ETH", "USDC"}


@pytest.mark.asyncio
async def test_provider_timeout_uses_fallback(config):
    primary = RecordingPriceAdapter(config, prices={"ETH": 1.0}, delay=1.0)
    fallback = RecordingPriceAdapter(config, prices={"ETH": 2600.0})

    result = await fetch_prices(["ETH"], primary, fallback, timeout=0.05)

    assert result.source == "fallback"
    assert result.quotes["ETH"].usd_price == 2600.0


@pytest.mark.asyncio
async def test_provider_failure_without_fallback(config):
    primary = RecordingPriceAdapter(config, error=PriceProviderUnavailable("down"))

    result = await fetch_prices(["ETH"], primary)

    assert result.quotes == {}
    assert result.source == "none"


@pytest.mark.asyncio
async def test_empty_symbols_make_no_call(config):
    primary = RecordingPriceAdapter(config)

    result = await fetch_prices([], primary)

    assert primary.calls == []
    assert result.quotes == {}
    assert result.source == "none"


@pytest.mark.asyncio
async def test_price_assets_sets_context(config, monkeypatch):
    primary = RecordingPriceAdapter(config, prices={"ETH": 2500.0, "USDC": 1.0})
    monkeypatch.setattr(pipeline_pricing, "CoinGeckoPriceAdapter", lambda _c: primary)

    state = AppState(settings=config, logger=logging.getLogger("test"))
    ctx = PipelineContext(state=state, wallet_address="0x", chains=[Chain.MAINNET])
    ctx.balances = [
        RawBalance(None, 10**18, "ETH", "Ethereum", 18, Chain.MAINNET),
        RawBalance("0xa", 10**6, "usdc", "USD Coin", 6, Chain.MAINNET),
        RawBalance("0xb", 10**6, "USDC", "USD Coin", 6, Chain.BASE),
    ]

    await pipeline_pricing.price_assets(ctx)

    assert primary.calls == [{"ETH", "USDC"}]
    assert set(ctx.prices_required) == {"ETH", "USDC"}
    assert ctx.price_source == "live"
