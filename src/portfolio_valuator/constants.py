"""Chain, provider and price-table constants."""

from typing import TypedDict


class NativeAsset(TypedDict):
    symbol: str
    name: str
    decimals: int


class FallbackQuote(TypedDict):
    usd_price: float
    change_24h_percent: float


EVM_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"

NATIVE_ASSETS: dict[str, NativeAsset] = {
    "mainnet": {"symbol": "ETH", "name": "Ethereum", "decimals": 18},
    "polygon": {"symbol": "MATIC", "name": "Polygon", "decimals": 18},
    "base": {"symbol": "ETH", "name": "Ethereum", "decimals": 18},
    "arbitrum": {"symbol": "ETH", "name": "Ethereum", "decimals": 18},
    "optimism": {"symbol": "ETH", "name": "Ethereum", "decimals": 18},
}

ALCHEMY_URL_TEMPLATE = "https://{slug}.g.alchemy.com/v2/{api_key}"

ALCHEMY_NETWORK_SLUGS: dict[str, str] = {
    "mainnet": "eth-mainnet",
    "polygon": "polygon-mainnet",
    "base": "base-mainnet",
    "arbitrum": "arb-mainnet",
    "optimism": "opt-mainnet",
}

DEFAULT_RPC_URLS: dict[str, str] = {
    "mainnet": "https://eth.drpc.org",
    "polygon": "https://polygon-rpc.com",
    "base": "https://mainnet.base.org",
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "optimism": "https://mainnet.optimism.io",
}

# ERC-20 contracts scanned by the plain RPC adapter when no token list is configured
DEFAULT_TOKENS: dict[str, list[str]] = {
    "mainnet": [
        "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",  # USDC
        "0xdAC17F958D2ee523a2206206994597C13D831ec7",  # USDT
        "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",  # WETH
        "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",  # WBTC
        "0x514910771AF9Ca656af840dff83E8264EcF986CA",  # LINK
        "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984",  # UNI
    ],
    "polygon": [
        "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",  # USDC.e
        "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",  # USDT
        "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619",  # WETH
        "0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6",  # WBTC
    ],
    "base": [
        "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",  # USDC
        "0x4200000000000000000000000000000000000006",  # WETH
    ],
    "arbitrum": [
        "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",  # USDC
        "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",  # WETH
    ],
    "optimism": [
        "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",  # USDC
        "0x4200000000000000000000000000000000000006",  # WETH
    ],
}

DEFAULT_COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"

# Several symbols may share one CoinGecko id (wrapped/bridged variants)
COINGECKO_SYMBOL_IDS: dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "BTC": "bitcoin",
    "BTCB": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "USDC": "usd-coin",
    "USDC.E": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "UNI": "uniswap",
    "LINK": "chainlink",
    "AAVE": "aave",
    "MATIC": "matic-network",
    "POL": "polygon-ecosystem-token",
    "COMP": "compound-governance-token",
    "CRV": "curve-dao-token",
    "SNX": "havven",
    "MKR": "maker",
    "YFI": "yearn-finance",
    "ARB": "arbitrum",
    "OP": "optimism",
    "SOL": "solana",
    "USOL": "solana",
}

# Used once per request when the live price provider is unavailable
FALLBACK_PRICES: dict[str, FallbackQuote] = {
    "ETH": {"usd_price": 2600.0, "change_24h_percent": 1.5},
    "WETH": {"usd_price": 2600.0, "change_24h_percent": 1.5},
    "BTC": {"usd_price": 43000.0, "change_24h_percent": 2.1},
    "BTCB": {"usd_price": 43000.0, "change_24h_percent": 2.1},
    "WBTC": {"usd_price": 43000.0, "change_24h_percent": 2.1},
    "USDC": {"usd_price": 1.0, "change_24h_percent": 0.0},
    "USDT": {"usd_price": 1.0, "change_24h_percent": 0.0},
    "DAI": {"usd_price": 1.0, "change_24h_percent": 0.0},
    "UNI": {"usd_price": 6.75, "change_24h_percent": 0.9},
    "LINK": {"usd_price": 15.20, "change_24h_percent": 3.2},
    "AAVE": {"usd_price": 95.40, "change_24h_percent": -1.2},
    "MATIC": {"usd_price": 0.85, "change_24h_percent": -0.5},
}
