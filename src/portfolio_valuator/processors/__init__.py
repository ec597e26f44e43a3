from __future__ import annotations

from .valuation import PortfolioSnapshot, ValuedAsset, normalize

__all__ = [
    "PortfolioSnapshot",
    "ValuedAsset",
    "normalize",
]
