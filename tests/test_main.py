from __future__ import annotations

import json
from datetime import datetime, timezone

from typer.testing import CliRunner

from portfolio_valuator.adapters.price_adapters import CoinGeckoPriceAdapter
from portfolio_valuator.adapters.price_adapters.base import PricePoint
from portfolio_valuator.exceptions import PriceProviderUnavailable
from portfolio_valuator.main import app
from portfolio_valuator.pipeline import run as pipeline_run
from portfolio_valuator.processors import normalize
from portfolio_valuator.settings import Chain

runner = CliRunner()

WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


def test_invalid_address_exits_with_usage_error():
    result = runner.invoke(
        app,
        ["portfolio", "0x1234", "--balance-provider", "rpc", "--log-level", "ERROR"],
    )

    assert result.exit_code == 2


def test_missing_alchemy_key_is_rejected():
    result = runner.invoke(app, ["portfolio", WALLET, "--log-level", "ERROR"])

    assert result.exit_code == 2


def test_unknown_balance_provider_is_rejected():
    result = runner.invoke(
        app, ["portfolio", WALLET, "--balance-provider", "etherscan"]
    )

    assert result.exit_code == 2


def test_show_config_redacts_secrets(monkeypatch):
    monkeypatch.setenv("PORTFOLIO_VALUATOR_ALCHEMY_API_KEY", "super-secret")

    result = runner.invoke(
        app,
        [
            "portfolio",
            WALLET,
            "--chain",
            "base",
            "--chain",
            "polygon",
            "--log-level",
            "ERROR",
            "--show-config",
        ],
    )

    assert result.exit_code == 0
    assert "super-secret" not in result.stdout
    payload = json.loads(result.stdout)
    assert payload["alchemy_api_key"] == "***redacted***"
    assert payload["chains"] == ["base", "polygon"]


def test_portfolio_json_output(monkeypatch):
    seen = {}

    async def fake_get_portfolio(state, wallet_address, chains=None):
        seen["wallet"] = wallet_address
        seen["chains"] = list(chains or [])
        return normalize(
            [],
            {},
            generated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            wallet_address=wallet_address,
            chain_errors={Chain.BASE: "timed out after 30.0s"},
        )

    monkeypatch.setattr(pipeline_run, "get_portfolio", fake_get_portfolio)

    result = runner.invoke(
        app,
        [
            "portfolio",
            WALLET,
            "--chain",
            "base",
            "--balance-provider",
            "rpc",
            "--json",
            "--log-level",
            "ERROR",
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["total_usd_value"] == 0
    assert payload["chain_errors"] == {"base": "timed out after 30.0s"}
    assert seen == {"wallet": WALLET, "chains": [Chain.BASE]}


def test_history_json_output(monkeypatch):
    async def fake_history(self, symbol, days=7):
        assert (symbol, days) == ("ETH", 3)
        return [
            PricePoint(
                timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc), usd_price=2350.0
            )
        ]

    monkeypatch.setattr(CoinGeckoPriceAdapter, "fetch_history", fake_history)

    result = runner.invoke(
        app, ["history", "eth", "--days", "3", "--json", "--log-level", "ERROR"]
    )

    assert result.exit_code == 0
    assert json.loads(result.stdout) == [
        {"timestamp": "2024-01-01T00:00:00+00:00", "usd_price": 2350.0}
    ]


def test_history_provider_failure_exits_nonzero(monkeypatch):
    async def failing_history(self, symbol, days=7):
        raise PriceProviderUnavailable("No CoinGecko id for symbol NOPE")

    monkeypatch.setattr(CoinGeckoPriceAdapter, "fetch_history", failing_history)

    result = runner.invoke(app, ["history", "nope", "--log-level", "CRITICAL"])

    assert result.exit_code == 1
