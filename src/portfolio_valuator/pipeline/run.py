"""High-level pipeline orchestration."""

from __future__ import annotations

import asyncio
from typing import Iterable

from ..processors import PortfolioSnapshot, normalize
from ..settings import Chain
from ..state import AppState
from .balances import collect_balances
from .context import PipelineContext
from .pricing import price_assets


async def build_snapshot(ctx: PipelineContext) -> None:
    """Value the collected balances and store the snapshot in the context."""
    log = ctx.state.logger

    snapshot = normalize(
        ctx.balances_required,
        ctx.prices_required,
        wallet_address=ctx.wallet_address,
        chain_errors=ctx.chain_errors,
        price_source=ctx.price_source or "none",
    )
    log.info(
        "Portfolio value: $%.2f across %d asset(s) (24h %+.2f%%)",
        snapshot.total_usd_value,
        snapshot.asset_count,
        snapshot.daily_change_percent,
    )
    ctx.snapshot = snapshot


async def get_portfolio(
    state: AppState,
    wallet_address: str,
    chains: Iterable[Chain] | None = None,
) -> PortfolioSnapshot:
    """Execute the complete valuation pipeline.

    This is a thin orchestrator that sequences the pipeline steps:
    1. Balance collection (per chain, concurrently)
    2. Pricing (single batch, with fallback)
    3. Valuation

    Args:
        state: Application state containing settings and logger
        wallet_address: The wallet to value
        chains: Chains to query; defaults to the configured chains

    Raises:
        InvalidAddress: If the wallet address is malformed
        asyncio.TimeoutError: If ``global_timeout_seconds`` is exceeded
    """
    s = state.settings
    log = state.logger

    requested = list(chains) if chains is not None else list(s.chains)
    log.info(
        "Starting valuation",
        extra={"wallet": wallet_address, "chains": [c.value for c in requested]},
    )

    timeout_s = s.global_timeout_seconds

    ctx = PipelineContext(state=state, wallet_address=wallet_address, chains=requested)

    async def _run_pipeline() -> None:
        await collect_balances(ctx)
        await price_assets(ctx)
        await build_snapshot(ctx)

    try:
        if timeout_s is None or timeout_s <= 0:
            await _run_pipeline()
        else:
            async with asyncio.timeout(timeout_s):
                await _run_pipeline()
    except asyncio.TimeoutError as exc:
        log.error(
            "Valuation pipeline timed out",
            extra={"wallet": wallet_address, "timeout_seconds": timeout_s},
        )
        raise asyncio.TimeoutError(
            "Valuation exceeded global timeout "
            f"{timeout_s}s (wallet={wallet_address})\n N.B. This can be changed via "
            "`global_timeout_seconds` or CLI flag `--global-timeout-seconds`."
        ) from exc

    log.info("Valuation completed", extra={"wallet": ctx.wallet_address})
    return ctx.snapshot_required
