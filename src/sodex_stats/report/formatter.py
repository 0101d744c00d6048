"""Rich console tables for balances, positions and exchange statistics."""

from __future__ import annotations

from collections.abc import Sequence

from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from ..clients.sodex import OpenPositionData, PnLOverviewData
from ..domain import BalanceSummary, DetailedBalance, DexStatus, EnrichedPosition, PairVolume
from ..processors.pnl import get_volume_from_pnl_overview
from ..units import format_usd, parse_amount


def _pnl_style(value: float) -> str:
    if value > 0:
        return "green"
    if value < 0:
        return "red"
    return "dim"


def _key_value_table(value_style: str) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim")
    table.add_column("Value", style=value_style, justify="right")
    return table


def format_balance_summary(
    user_id: str | int, summary: BalanceSummary, console: Console | None = None
) -> None:
    """Print the spot/futures/total balance panel."""
    console = console or Console()

    table = _key_value_table("green")
    table.add_row("Spot", format_usd(summary.spot_balance))
    table.add_row("Futures", format_usd(summary.futures_balance))
    table.add_row("[bold]Total[/]", f"[bold]{format_usd(summary.total_balance)}[/]")

    console.print(
        Panel(table, title=f"[bold]Balance · account {user_id}[/]", border_style="green")
    )


def format_detailed_balance(
    user_id: str | int, balance: DetailedBalance, console: Console | None = None
) -> None:
    """Print the balance summary next to the per-token spot breakdown."""
    console = console or Console()

    summary = _key_value_table("green")
    summary.add_row("Spot", format_usd(balance.spot_balance))
    summary.add_row("Futures", format_usd(balance.futures_balance))
    summary.add_row("[bold]Total[/]", f"[bold]{format_usd(balance.total_usd_value)}[/]")
    summary_panel = Panel(summary, title="[bold]Summary[/]", border_style="green")

    tokens = Table(expand=True)
    tokens.add_column("Token", style="cyan", no_wrap=True)
    tokens.add_column("Coin", style="dim")
    tokens.add_column("Balance", justify="right")
    tokens.add_column("USD Value", justify="right", style="green")
    for token in sorted(balance.tokens, key=lambda t: t.usd_value, reverse=True):
        tokens.add_row(
            token.token,
            token.coin,
            f"{token.balance:,.6f}",
            format_usd(token.usd_value),
        )
    tokens_panel = Panel(tokens, title="[bold]Spot Tokens[/]", border_style="cyan")

    console.print(
        Panel(
            Group(summary_panel, tokens_panel),
            title=f"[bold white]Account {user_id}[/]",
            border_style="white",
        )
    )


def format_closed_positions(
    user_id: str | int,
    positions: Sequence[EnrichedPosition],
    console: Console | None = None,
) -> None:
    """Print closed positions with realized PnL and fees."""
    console = console or Console()

    table = Table(expand=True, title=f"Closed positions · account {user_id}")
    table.add_column("Pair", style="cyan", no_wrap=True)
    table.add_column("Side")
    table.add_column("Margin", style="dim")
    table.add_column("Closed Size", justify="right")
    table.add_column("Realized PnL", justify="right")
    table.add_column("Fee", justify="right", style="yellow")
    table.add_column("Opened", style="dim")

    total_pnl = 0.0
    total_fee = 0.0
    for position in positions:
        total_pnl += position.realized_pnl_value
        total_fee += position.trading_fee
        table.add_row(
            position.pair_name,
            position.position_side_label,
            position.margin_mode_label,
            f"{position.closed_size:,.4f}",
            f"[{_pnl_style(position.realized_pnl_value)}]"
            f"{format_usd(position.realized_pnl_value)}[/]",
            format_usd(position.trading_fee),
            position.created_at_formatted,
        )

    table.add_row(
        "[bold]TOTAL[/]",
        "",
        "",
        str(len(positions)),
        f"[bold {_pnl_style(total_pnl)}]{format_usd(total_pnl)}[/]",
        f"[bold]{format_usd(total_fee)}[/]",
        "",
    )
    console.print(table)


def format_open_positions(
    user_id: str | int,
    positions: Sequence[OpenPositionData],
    console: Console | None = None,
) -> None:
    console = console or Console()

    table = Table(expand=True, title=f"Open positions · account {user_id}")
    table.add_column("Symbol", style="cyan", no_wrap=True)
    table.add_column("Side")
    table.add_column("Size", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Liquidation", justify="right", style="yellow")
    table.add_column("Leverage", justify="right", style="dim")
    table.add_column("Unrealized PnL", justify="right")

    for position in positions:
        unrealized = parse_amount(position.get("unrealizedProfit"))
        table.add_row(
            position.get("symbol", ""),
            position.get("positionSide", ""),
            position.get("positionSize", ""),
            position.get("entryPrice", ""),
            position.get("liquidationPrice", ""),
            f"{position.get('leverage', '')}x",
            f"[{_pnl_style(unrealized)}]{format_usd(unrealized)}[/]",
        )
    console.print(table)


def format_pnl_overview(
    user_id: str | int, pnl: PnLOverviewData, console: Console | None = None
) -> None:
    console = console or Console()

    cumulative = parse_amount(pnl.get("cumulative_pnl"))
    unrealized = parse_amount(pnl.get("unrealized_pnl"))

    table = _key_value_table("white")
    table.add_row(
        "Cumulative PnL", f"[{_pnl_style(cumulative)}]{format_usd(cumulative)}[/]"
    )
    table.add_row(
        "Unrealized PnL", f"[{_pnl_style(unrealized)}]{format_usd(unrealized)}[/]"
    )
    table.add_row("Volume", format_usd(get_volume_from_pnl_overview(pnl)))

    console.print(
        Panel(table, title=f"[bold]PnL · account {user_id}[/]", border_style="blue")
    )


def _volume_table(title: str, volumes: Sequence[PairVolume]) -> Panel:
    table = Table(expand=True, box=None)
    table.add_column("Pair", style="cyan")
    table.add_column("Volume", justify="right", style="green")
    for entry in volumes:
        table.add_row(entry.pair, format_usd(entry.volume))
    return Panel(table, title=f"[bold]{title}[/]", border_style="cyan")


def format_dex_status(status: DexStatus, console: Console | None = None) -> None:
    """Print trader counts, combined volumes and the top pairs."""
    console = console or Console()

    traders = _key_value_table("white")
    if status.trader_stats is not None:
        stats = status.trader_stats
        traders.add_row("Traders", f"{stats.total_users:,}")
        traders.add_row("In profit", f"[green]{stats.users_in_profit:,}[/]")
        traders.add_row("In loss", f"[red]{stats.users_in_loss:,}[/]")
    traders_panel = Panel(traders, title="[bold]Traders[/]", border_style="blue")

    volume = _key_value_table("green")
    all_time = (status.volume_data or {}).get("all_time_stats") or {}
    for label, key in (
        ("Combined", "total_combined_volume"),
        ("Spot", "total_spot_volume"),
        ("Futures", "total_futures_volume"),
    ):
        volume.add_row(label, format_usd(parse_amount(all_time.get(key))))
    volume_panel = Panel(volume, title="[bold]All-time Volume[/]", border_style="green")

    console.print(
        Panel(
            Group(
                Columns([traders_panel, volume_panel], equal=True, expand=True),
                Columns(
                    [
                        _volume_table("Top Spot", status.top_spot),
                        _volume_table("Top Futures", status.top_futures),
                    ],
                    equal=True,
                    expand=True,
                ),
            ),
            title="[bold white]Sodex Status[/]",
            border_style="white",
        )
    )
