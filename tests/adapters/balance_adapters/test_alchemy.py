from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from portfolio_valuator.adapters.balance_adapters import (
    AlchemyBalanceAdapter,
    get_adapter_class,
)
from portfolio_valuator.adapters.balance_adapters.base import TokenBalance
from portfolio_valuator.exceptions import ChainProviderUnavailable
from portfolio_valuator.settings import Chain, ValuatorSettings

WALLET = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


@pytest.fixture
def config():
    return ValuatorSettings(alchemy_api_key="test-key", rpc_delay=0, rpc_jitter=0)


def _stub_provider(adapter: AlchemyBalanceAdapter, make_request) -> MagicMock:
    w3 = MagicMock()
    w3.provider.make_request.side_effect = make_request
    adapter._web3_by_chain = {chain: w3 for chain in Chain}
    return w3.provider.make_request


def _http_error(status: int) -> requests.exceptions.HTTPError:
    response = requests.Response()
    response.status_code = status
    return requests.exceptions.HTTPError(f"{status} error", response=response)


def test_registry_resolves_alchemy():
    assert get_adapter_class("alchemy") is AlchemyBalanceAdapter
    with pytest.raises(ValueError, match="Unknown adapter"):
        get_adapter_class("etherscan")


def test_requires_api_key():
    with pytest.raises(ValueError, match="alchemy_api_key"):
        AlchemyBalanceAdapter(ValuatorSettings())


@pytest.mark.asyncio
async def test_native_balance_parses_hex(config):
    adapter = AlchemyBalanceAdapter(config)
    make_request = _stub_provider(
        adapter, lambda method, params: {"result": "0x1bc16d674ec80000"}
    )

    balance = await adapter.get_native_balance(WALLET, Chain.MAINNET)

    assert balance == 2 * 10**18
    make_request.assert_called_once_with("eth_getBalance", [WALLET, "latest"])


@pytest.mark.asyncio
async def test_token_balances_follow_page_keys(config):
    pages = [
        {
            "tokenBalances": [
                {"contractAddress": USDC, "tokenBalance": "0x1dcd6500"},
                {"contractAddress": "0xbad", "tokenBalance": None, "error": "boom"},
            ],
            "pageKey": "next",
        },
        {
            "tokenBalances": [
                {"contractAddress": "0xdead", "tokenBalance": "0x"},
            ],
        },
    ]
    adapter = AlchemyBalanceAdapter(config)
    make_request = _stub_provider(
        adapter, lambda method, params: {"result": pages.pop(0)}
    )

    balances = await adapter.get_token_balances(WALLET, Chain.BASE)

    assert balances == [
        TokenBalance(contract_address=USDC, raw_amount=500_000_000),
        TokenBalance(contract_address="0xdead", raw_amount=0),
    ]
    first, second = make_request.call_args_list
    assert first.args == ("alchemy_getTokenBalances", [WALLET, "erc20"])
    assert second.args == (
        "alchemy_getTokenBalances",
        [WALLET, "erc20", {"pageKey": "next"}],
    )


@pytest.mark.asyncio
async def test_token_metadata(config):
    adapter = AlchemyBalanceAdapter(config)
    _stub_provider(
        adapter,
        lambda method, params: {
            "result": {"symbol": "USDC", "name": "USD Coin", "decimals": 6}
        },
    )

    metadata = await adapter.get_token_metadata(USDC, Chain.MAINNET)

    assert metadata is not None
    assert (metadata.symbol, metadata.name, metadata.decimals) == (
        "USDC",
        "USD Coin",
        6,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result",
    [
        None,
        {"symbol": None, "name": "x", "decimals": 18},
        {"symbol": "X", "name": "x", "decimals": None},
        {"symbol": "X", "name": "x", "decimals": "lots"},
    ],
)
async def test_token_metadata_incomplete_returns_none(config, result):
    adapter = AlchemyBalanceAdapter(config)
    _stub_provider(adapter, lambda method, params: {"result": result})

    assert await adapter.get_token_metadata(USDC, Chain.MAINNET) is None


@pytest.mark.asyncio
async def test_forbidden_maps_to_unsupported_chain(config):
    adapter = AlchemyBalanceAdapter(config)

    def make_request(method, params):
        raise _http_error(403)

    _stub_provider(adapter, make_request)

    with pytest.raises(ChainProviderUnavailable) as exc_info:
        await adapter.get_native_balance(WALLET, Chain.OPTIMISM)

    assert exc_info.value.chain == "optimism"
    assert exc_info.value.reason == "API key does not support this chain"


@pytest.mark.asyncio
async def test_server_error_maps_to_unavailable(config):
    adapter = AlchemyBalanceAdapter(config)

    def make_request(method, params):
        raise _http_error(500)

    _stub_provider(adapter, make_request)

    with pytest.raises(ChainProviderUnavailable, match="HTTP error"):
        await adapter.get_token_balances(WALLET, Chain.MAINNET)


@pytest.mark.asyncio
async def test_rpc_error_payload_maps_to_unavailable(config):
    adapter = AlchemyBalanceAdapter(config)
    _stub_provider(
        adapter,
        lambda method, params: {"error": {"code": -32600, "message": "invalid key"}},
    )

    with pytest.raises(ChainProviderUnavailable, match="invalid key"):
        await adapter.get_native_balance(WALLET, Chain.MAINNET)
