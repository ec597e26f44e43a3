"""Rich console formatter for portfolio snapshots."""

from __future__ import annotations

from decimal import Decimal, localcontext

from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..processors import PortfolioSnapshot
from ..units import DECIMAL_PRECISION


def _truncate_address(address: str) -> str:
    """Truncate address for display."""
    return f"{address[:10]}...{address[-4:]}"


def _format_usd(value: float) -> str:
    return f"${value:,.2f}"


def _format_change(value: float, suffix: str = "%") -> str:
    """Color a signed change green or red."""
    style = "green" if value >= 0 else "red"
    return f"[{style}]{value:+,.2f}{suffix}[/]"


def _format_balance(balance: Decimal) -> str:
    """Show up to 6 decimal places without trailing zeros."""
    with localcontext(prec=DECIMAL_PRECISION):
        quantized = balance.quantize(Decimal("0.000001")).normalize()
    if quantized == 0 and balance > 0:
        return "<0.000001"
    return f"{quantized:,f}"


def format_snapshot_table(
    snapshot: PortfolioSnapshot, console: Console | None = None
) -> None:
    """Print a rich formatted dashboard for a snapshot.

    Args:
        snapshot: The portfolio snapshot to format
        console: Console to print to, defaults to stdout
    """
    console = console or Console()

    # Wallet info
    wallet_table = Table(show_header=False, box=None, padding=(0, 1))
    wallet_table.add_column("Key", style="dim")
    wallet_table.add_column("Value", style="cyan")
    wallet_table.add_row(
        "Address",
        _truncate_address(snapshot.wallet_address) if snapshot.wallet_address else "-",
    )
    wallet_table.add_row("Prices", snapshot.price_source)
    wallet_table.add_row(
        "Generated", snapshot.generated_at.strftime("%Y-%m-%d %H:%M:%S %Z")
    )

    wallet_panel = Panel(wallet_table, title="[bold]Wallet[/]", border_style="blue")

    # Summary
    summary_table = Table(show_header=False, box=None, padding=(0, 1))
    summary_table.add_column("Key", style="dim")
    summary_table.add_column("Value", style="green")
    summary_table.add_row("Total Value", _format_usd(snapshot.total_usd_value))
    summary_table.add_row(
        "24h Change",
        f"{_format_change(snapshot.daily_change_usd, suffix='')} USD "
        f"({_format_change(snapshot.daily_change_percent)})",
    )
    summary_table.add_row("Assets", str(snapshot.asset_count))

    summary_panel = Panel(summary_table, title="[bold]Summary[/]", border_style="green")

    top_row = Columns([wallet_panel, summary_panel], equal=True, expand=True)

    # Asset breakdown
    asset_table = Table(title=None, expand=True, show_lines=False)
    asset_table.add_column("Asset", style="cyan", no_wrap=True)
    asset_table.add_column("Chains", style="dim")
    asset_table.add_column("Balance", justify="right")
    asset_table.add_column("Price", justify="right", style="yellow")
    asset_table.add_column("24h", justify="right")
    asset_table.add_column("Value", justify="right", style="green")
    asset_table.add_column("Allocation", justify="right")

    for asset in snapshot.assets:
        price_display = (
            _format_usd(asset.usd_price) if asset.usd_price else "[dim]<N/A>[/]"
        )
        asset_table.add_row(
            asset.symbol,
            ", ".join(sorted(chain.value for chain in asset.chains)),
            _format_balance(asset.decimal_balance),
            price_display,
            _format_change(asset.change_24h_percent),
            _format_usd(asset.usd_value),
            f"{asset.allocation_percent:.2f}%",
        )

    asset_table.add_row(
        "[bold]TOTAL[/]",
        "",
        "",
        "",
        "",
        f"[bold]{_format_usd(snapshot.total_usd_value)}[/]",
        "[bold]100.00%[/]" if snapshot.total_usd_value > 0 else "",
        style="bold",
    )

    asset_panel = Panel(
        asset_table,
        title="[bold]Asset Breakdown[/]",
        border_style="cyan",
    )

    sections: list = [top_row, "", asset_panel]

    if snapshot.is_partial:
        warnings = Text()
        for chain, reason in sorted(
            snapshot.chain_errors.items(), key=lambda item: item[0].value
        ):
            warnings.append(f"{chain.value}", style="bold yellow")
            warnings.append(f": {reason}\n")
        sections += [
            "",
            Panel(
                warnings,
                title="[bold]Skipped Chains (partial data)[/]",
                border_style="yellow",
            ),
        ]

    outer_panel = Panel(
        Group(*sections),
        title="[bold white]Portfolio Valuation[/]",
        border_style="white",
        padding=(1, 2),
    )

    console.print()
    console.print(outer_panel)
    console.print()
