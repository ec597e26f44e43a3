from __future__ import annotations

from .balances import BalanceFetchResult, fetch_balances, fetch_chain_balances
from .pricing import PriceFetchResult, fetch_prices
from .run import get_portfolio

__all__ = [
    "BalanceFetchResult",
    "PriceFetchResult",
    "fetch_balances",
    "fetch_chain_balances",
    "fetch_prices",
    "get_portfolio",
]
