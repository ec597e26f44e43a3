from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

import backoff
import requests

from ...constants import COINGECKO_SYMBOL_IDS
from ...exceptions import PriceProviderUnavailable
from ...logger import get_logger
from ...settings import ValuatorSettings
from .base import BasePriceAdapter, PricePoint, PriceQuote, make_quote

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class CoinGeckoPriceAdapter(BasePriceAdapter):
    """Adapter for the CoinGecko public API.

    All requested symbols are priced with one ``/simple/price`` call. Symbols
    are translated to CoinGecko ids through a static table that settings may
    extend; several symbols may share one id.
    """

    def __init__(self, config: ValuatorSettings):
        super().__init__(config)
        self.api_base_url = config.coingecko_base_url.rstrip("/")
        self.symbol_ids: dict[str, str] = {
            **COINGECKO_SYMBOL_IDS,
            **config.coingecko_ids,
        }
        self.timeout = config.price_timeout_seconds

    @property
    def adapter_name(self) -> str:
        return "coingecko"

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.config.coingecko_api_key is not None:
            headers["x-cg-demo-api-key"] = (
                self.config.coingecko_api_key.get_secret_value()
            )
        return headers

    @backoff.on_exception(
        backoff.expo,
        requests.exceptions.RequestException,
        max_tries=3,
        giveup=lambda e: (
            isinstance(e, requests.exceptions.HTTPError)
            and e.response is not None
            and e.response.status_code not in RETRYABLE_STATUS_CODES
        ),
        jitter=backoff.full_jitter,
    )
    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        """GET ``path`` from the API and decode the JSON body.

        Raises:
            ValueError: If the body is not valid JSON
            requests.exceptions.RequestException: If the request fails
        """
        url = f"{self.api_base_url}{path}"
        logger.debug("Calling %s with %s", url, params)
        response = await asyncio.to_thread(
            requests.get,
            url,
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ValueError("Invalid JSON from CoinGecko API") from e

    def coin_id_for(self, symbol: str) -> str | None:
        return self.symbol_ids.get(symbol.upper())

    async def fetch_prices(self, symbols: set[str]) -> dict[str, PriceQuote]:
        """Fetch USD prices and 24h changes for ``symbols`` in one batch call.

        Raises:
            PriceProviderUnavailable: If the batch call fails or the response
                is malformed.
        """
        ids_by_symbol: dict[str, str] = {}
        for symbol in sorted(symbols):
            coin_id = self.coin_id_for(symbol)
            if coin_id is None:
                logger.debug("No CoinGecko id for %s, omitting", symbol)
                continue
            ids_by_symbol[symbol] = coin_id

        if not ids_by_symbol:
            return {}

        coin_ids = sorted(set(ids_by_symbol.values()))
        try:
            data = await self._get_json(
                "/simple/price",
                {
                    "ids": ",".join(coin_ids),
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                },
            )
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PriceProviderUnavailable(f"CoinGecko price request failed: {e}") from e

        if not isinstance(data, dict):
            raise PriceProviderUnavailable(f"Invalid response structure: {data!r}")

        quotes: dict[str, PriceQuote] = {}
        for symbol, coin_id in ids_by_symbol.items():
            entry = data.get(coin_id)
            if not isinstance(entry, dict):
                logger.debug("CoinGecko returned no price for %s (%s)", symbol, coin_id)
                continue
            quote = make_quote(symbol, entry.get("usd"), entry.get("usd_24h_change"))
            if quote is None:
                logger.warning(
                    "Discarding invalid CoinGecko price for %s: %r",
                    symbol,
                    entry.get("usd"),
                )
                continue
            quotes[symbol] = quote

        logger.debug("Fetched %d CoinGecko quotes", len(quotes))
        return quotes

    async def fetch_history(self, symbol: str, days: int = 7) -> list[PricePoint]:
        """Fetch the USD price history of ``symbol`` over the last ``days`` days.

        Raises:
            PriceProviderUnavailable: If the symbol has no CoinGecko id or the
                request fails.
        """
        if days <= 0:
            raise ValueError(f"days must be positive: {days}")

        coin_id = self.coin_id_for(symbol)
        if coin_id is None:
            raise PriceProviderUnavailable(f"No CoinGecko id for symbol {symbol}")

        try:
            data = await self._get_json(
                f"/coins/{coin_id}/market_chart",
                {"vs_currency": "usd", "days": days},
            )
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PriceProviderUnavailable(
                f"CoinGecko history request failed for {symbol}: {e}"
            ) from e

        raw_points = data.get("prices") if isinstance(data, dict) else None
        if not isinstance(raw_points, list):
            raise PriceProviderUnavailable(f"Invalid market chart response: {data!r}")

        points: list[PricePoint] = []
        for item in raw_points:
            try:
                ts_ms, price = item
                points.append(
                    PricePoint(
                        timestamp=datetime.fromtimestamp(
                            int(ts_ms) / 1000, tz=timezone.utc
                        ),
                        usd_price=float(price),
                    )
                )
            except (TypeError, ValueError) as e:
                logger.debug("Skipping invalid point %r: %s", item, e)

        points.sort(key=lambda p: p.timestamp)
        return points
