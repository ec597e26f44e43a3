"""CLI entrypoint for the portfolio valuator."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .exceptions import InvalidAddress, PriceProviderUnavailable
from .logger import setup_logging
from .settings import Chain, ValuatorSettings
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Multi-chain wallet portfolio valuation.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML config file (can include [portfolio_valuator] table).",
    ),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
]


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("portfolio_valuator")


def _load_settings(config_path: Path | None, init_kwargs: dict[str, Any]) -> AppState:
    """Load settings with CLI overrides applied and configure logging."""
    if config_path:
        os.environ["PORTFOLIO_VALUATOR_CONFIG"] = str(config_path)

    try:
        settings = ValuatorSettings(**init_kwargs)
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    setup_logging(settings.log_level)
    return AppState(settings=settings, logger=_build_logger())


def _require_balance_credentials(settings: ValuatorSettings) -> None:
    if settings.balance_provider != "alchemy" or settings.alchemy_api_key:
        return
    missing = [chain for chain in settings.chains if chain not in settings.rpc_urls]
    if missing:
        raise typer.BadParameter(
            "alchemy_api_key is required for the alchemy balance provider.",
            param_hint=["PORTFOLIO_VALUATOR_ALCHEMY_API_KEY", "--balance-provider rpc"],
        )


@app.command()
def portfolio(
    wallet_address: Annotated[str, typer.Argument(help="Wallet address to value.")],
    chains: Annotated[
        list[Chain] | None,
        typer.Option(
            "--chain",
            "-n",
            help="Chain to query; repeat for several. Defaults to configured chains.",
        ),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the snapshot as JSON instead of a table."),
    ] = False,
    config_path: ConfigOption = None,
    balance_provider: Annotated[
        str | None,
        typer.Option(
            "--balance-provider",
            help="Balance provider to use (alchemy or rpc).",
        ),
    ] = None,
    global_timeout_seconds: Annotated[
        float | None,
        typer.Option(
            "--global-timeout-seconds",
            help="Abort the whole valuation after this many seconds.",
        ),
    ] = None,
    log_level: LogLevelOption = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Value a wallet across chains and print the snapshot.

    Chains that cannot be reached are skipped and listed in the output; the
    command still succeeds with partial data.
    """
    init_kwargs: dict[str, Any] = {}
    if chains:
        init_kwargs["chains"] = chains
    if balance_provider is not None:
        init_kwargs["balance_provider"] = balance_provider
    if global_timeout_seconds is not None:
        init_kwargs["global_timeout_seconds"] = global_timeout_seconds
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    state = _load_settings(config_path, init_kwargs)

    if show_config:
        typer.echo(json.dumps(state.settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    _require_balance_credentials(state.settings)

    from .pipeline.run import get_portfolio
    from .report import encode_snapshot, format_snapshot_table

    try:
        snapshot = asyncio.run(
            get_portfolio(state, wallet_address, state.settings.chains)
        )
    except InvalidAddress as e:
        raise typer.BadParameter(str(e), param_hint="WALLET_ADDRESS") from e

    if as_json:
        typer.echo(encode_snapshot(snapshot))
    else:
        format_snapshot_table(snapshot)


@app.command()
def history(
    symbol: Annotated[str, typer.Argument(help="Asset symbol, e.g. ETH.")],
    days: Annotated[
        int,
        typer.Option("--days", "-d", min=1, help="Number of days of history."),
    ] = 7,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the points as JSON instead of a table."),
    ] = False,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
):
    """Show the USD price history of a symbol."""
    init_kwargs: dict[str, Any] = {}
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    state = _load_settings(config_path, init_kwargs)

    from .adapters.price_adapters import CoinGeckoPriceAdapter

    adapter = CoinGeckoPriceAdapter(state.settings)
    try:
        points = asyncio.run(adapter.fetch_history(symbol.upper(), days))
    except PriceProviderUnavailable as e:
        state.logger.error("%s", e)
        raise typer.Exit(code=1) from e

    if as_json:
        typer.echo(
            json.dumps(
                [
                    {"timestamp": p.timestamp.isoformat(), "usd_price": p.usd_price}
                    for p in points
                ],
                indent=2,
            )
        )
        return

    table = Table(title=f"{symbol.upper()} / USD ({days}d)")
    table.add_column("Time (UTC)", style="dim")
    table.add_column("Price", justify="right", style="yellow")
    for point in points:
        table.add_row(
            point.timestamp.strftime("%Y-%m-%d %H:%M"), f"${point.usd_price:,.4f}"
        )
    Console().print(table)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
