from __future__ import annotations

from dataclasses import dataclass, field

from ..adapters.balance_adapters.base import RawBalance
from ..adapters.price_adapters.base import PriceQuote
from ..processors import PortfolioSnapshot
from ..settings import Chain
from ..state import AppState


@dataclass
class PipelineContext:
    state: AppState
    wallet_address: str
    chains: list[Chain]
    balances: list[RawBalance] | None = None
    chain_errors: dict[Chain, str] = field(default_factory=dict)
    prices: dict[str, PriceQuote] | None = None
    price_source: str | None = None
    snapshot: PortfolioSnapshot | None = None

    @property
    def balances_required(self) -> list[RawBalance]:
        if self.balances is None:
            raise RuntimeError(
                "Balances have not been set. Ensure collect_balances() is called before accessing this property."
            )
        return self.balances

    @property
    def prices_required(self) -> dict[str, PriceQuote]:
        if self.prices is None:
            raise RuntimeError(
                "Prices have not been set. Ensure price_assets() is called before accessing this property."
            )
        return self.prices

    @property
    def snapshot_required(self) -> PortfolioSnapshot:
        if self.snapshot is None:
            raise RuntimeError(
                "Snapshot has not been set. Ensure build_snapshot() is called before accessing this property."
            )
        return self.snapshot
