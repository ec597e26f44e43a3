from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, localcontext
from typing import Iterable, Mapping

from ..adapters.balance_adapters.base import RawBalance
from ..adapters.price_adapters.base import PriceQuote
from ..logger import get_logger
from ..settings import Chain
from ..units import DECIMAL_PRECISION, to_decimal_units

logger = get_logger(__name__)


@dataclass(frozen=True)
class ValuedAsset:
    """One symbol's holdings across all chains, valued in USD."""

    symbol: str
    name: str
    decimal_balance: Decimal
    usd_price: float
    usd_value: float
    change_24h_percent: float
    allocation_percent: float
    chains: frozenset[Chain]
    contract_addresses: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "balance": str(self.decimal_balance),
            "usd_price": self.usd_price,
            "usd_value": self.usd_value,
            "change_24h_percent": self.change_24h_percent,
            "allocation_percent": self.allocation_percent,
            "chains": sorted(chain.value for chain in self.chains),
            "contract_addresses": list(self.contract_addresses),
        }


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Valued, allocated and sorted view of a wallet at one point in time."""

    total_usd_value: float
    daily_change_usd: float
    daily_change_percent: float
    assets: tuple[ValuedAsset, ...]
    generated_at: datetime
    wallet_address: str | None = None
    chain_errors: Mapping[Chain, str] = field(default_factory=dict)
    price_source: str = "live"

    @property
    def asset_count(self) -> int:
        return len(self.assets)

    @property
    def is_partial(self) -> bool:
        """True when at least one requested chain was skipped."""
        return bool(self.chain_errors)

    def to_dict(self) -> dict[str, object]:
        """Convert the snapshot to a JSON-ready dictionary."""
        return {
            "wallet_address": self.wallet_address,
            "total_usd_value": self.total_usd_value,
            "daily_change_usd": self.daily_change_usd,
            "daily_change_percent": self.daily_change_percent,
            "asset_count": self.asset_count,
            "assets": [asset.to_dict() for asset in self.assets],
            "chain_errors": {
                chain.value: reason
                for chain, reason in sorted(
                    self.chain_errors.items(), key=lambda item: item[0].value
                )
            },
            "price_source": self.price_source,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class _SymbolGroup:
    name: str
    balance: Decimal = Decimal(0)
    chains: set[Chain] = field(default_factory=set)
    contracts: list[str] = field(default_factory=list)


def _group_by_symbol(balances: Iterable[RawBalance]) -> dict[str, _SymbolGroup]:
    groups: dict[str, _SymbolGroup] = {}
    for balance in balances:
        symbol = balance.symbol.upper()
        group = groups.get(symbol)
        if group is None:
            group = groups[symbol] = _SymbolGroup(name=balance.name)
        with localcontext(prec=DECIMAL_PRECISION):
            group.balance += to_decimal_units(balance.raw_amount, balance.decimals)
        group.chains.add(balance.chain)
        if balance.contract_address and balance.contract_address not in group.contracts:
            group.contracts.append(balance.contract_address)
    return groups


def _usable_price(symbol: str, quote: PriceQuote | None) -> tuple[float, float]:
    """Return (usd_price, change_24h_percent), clamping malformed quotes to 0."""
    if quote is None:
        return 0.0, 0.0
    price = quote.usd_price
    change = quote.change_24h_percent
    if not math.isfinite(price) or price < 0:
        logger.warning("Clamping invalid price for %s to 0: %r", symbol, price)
        price = 0.0
    if not math.isfinite(change):
        logger.warning("Clamping invalid 24h change for %s to 0: %r", symbol, change)
        change = 0.0
    return price, change


def normalize(
    balances: Iterable[RawBalance],
    prices: Mapping[str, PriceQuote],
    *,
    generated_at: datetime | None = None,
    wallet_address: str | None = None,
    chain_errors: Mapping[Chain, str] | None = None,
    price_source: str = "live",
) -> PortfolioSnapshot:
    """Value raw balances and build a portfolio snapshot.

    Args:
        balances: Raw balances from every chain
        prices: Quotes keyed by uppercase symbol; missing symbols are worth 0
        generated_at: Snapshot timestamp, defaults to now (UTC)
        wallet_address: Wallet the balances belong to
        chain_errors: Chains that were skipped and why
        price_source: Where the quotes came from ("live", "fallback", "none")

    Returns:
        Snapshot with assets sorted by USD value descending, ties by symbol.

    Notes:
        - Balances sharing a symbol are summed across chains and contracts.
        - The daily change is approximated from today's value and today's
          24h percent change; it is not a historical reconstruction.
    """
    groups = _group_by_symbol(balances)

    valued: list[tuple[str, _SymbolGroup, float, float, float]] = []
    for symbol, group in groups.items():
        if group.balance <= 0:
            logger.debug("Dropping %s with non-positive balance %s", symbol, group.balance)
            continue
        usd_price, change = _usable_price(symbol, prices.get(symbol))
        usd_value = float(group.balance * Decimal(repr(usd_price)))
        valued.append((symbol, group, usd_price, usd_value, change))

    total_usd_value = math.fsum(usd_value for _, _, _, usd_value, _ in valued)
    daily_change_usd = math.fsum(
        usd_value * change / 100 for _, _, _, usd_value, change in valued
    )
    previous_value = total_usd_value - daily_change_usd
    daily_change_percent = (
        daily_change_usd / previous_value * 100 if previous_value != 0 else 0.0
    )

    assets = [
        ValuedAsset(
            symbol=symbol,
            name=group.name,
            decimal_balance=group.balance,
            usd_price=usd_price,
            usd_value=usd_value,
            change_24h_percent=change,
            allocation_percent=(
                usd_value / total_usd_value * 100 if total_usd_value > 0 else 0.0
            ),
            chains=frozenset(group.chains),
            contract_addresses=tuple(group.contracts),
        )
        for symbol, group, usd_price, usd_value, change in valued
    ]
    assets.sort(key=lambda asset: (-asset.usd_value, asset.symbol))

    return PortfolioSnapshot(
        total_usd_value=total_usd_value,
        daily_change_usd=daily_change_usd,
        daily_change_percent=daily_change_percent,
        assets=tuple(assets),
        generated_at=generated_at or datetime.now(timezone.utc),
        wallet_address=wallet_address,
        chain_errors=dict(chain_errors or {}),
        price_source=price_source,
    )
