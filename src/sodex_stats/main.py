"""CLI entrypoint for sodex-stats."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Awaitable
from pathlib import Path
from typing import Annotated, TypeVar

import requests
import typer

from .clients import SodexAPIError, SodexClient, StatsFeedClient
from .logger import setup_logging
from .processors import (
    fetch_closed_positions,
    fetch_detailed_balance,
    fetch_dex_status,
    fetch_total_balance,
)
from .report import (
    format_balance_summary,
    format_closed_positions,
    format_detailed_balance,
    format_dex_status,
    format_open_positions,
    format_pnl_overview,
)
from .settings import StatsSettings
from .state import AppState

T = TypeVar("T")

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Balance, position and volume statistics for Sodex accounts.",
)


def _build_logger() -> logging.Logger:
    return logging.getLogger("sodex_stats")


def _state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):
        raise typer.BadParameter("CLI state was not initialised")
    return state


def _run(state: AppState, coro: Awaitable[T]) -> T:
    """Run a command coroutine, turning upstream failures into exit code 1."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except (SodexAPIError, requests.RequestException, ValueError) as e:
        state.logger.debug("Upstream failure", exc_info=True)
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [sodex_stats] table).",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    cache_ttl: Annotated[
        float | None,
        typer.Option(
            "--cache-ttl",
            help="Seconds an upstream response is reused within this run.",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config and exit.",
        ),
    ] = False,
):
    """Load configuration and set up logging and the API client."""
    if config_path:
        os.environ["SODEX_STATS_CONFIG"] = str(config_path)

    init_kwargs: dict[str, str | float] = {}
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()
    if cache_ttl is not None:
        init_kwargs["cache_ttl_seconds"] = cache_ttl

    settings = StatsSettings(**init_kwargs)

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    setup_logging(settings.log_level)
    ctx.obj = AppState(
        settings=settings,
        logger=_build_logger(),
        client=SodexClient(settings),
    )


@app.command()
def balance(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Sodex account ID.")],
    detailed: Annotated[
        bool,
        typer.Option(
            "--detailed",
            help="Use the exchange-reported spot total and list every token.",
        ),
    ] = False,
):
    """Show an account's USD balance across spot and futures."""
    state = _state(ctx)
    if detailed:
        result = _run(state, fetch_detailed_balance(state.client, user_id))
        format_detailed_balance(user_id, result)
    else:
        summary = _run(state, fetch_total_balance(state.client, user_id))
        format_balance_summary(user_id, summary)


@app.command()
def positions(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Sodex account ID.")],
    open_only: Annotated[
        bool,
        typer.Option("--open", help="Show open positions instead of closed ones."),
    ] = False,
):
    """Show closed (default) or open futures positions."""
    state = _state(ctx)
    if open_only:
        open_positions = _run(state, state.client.fetch_open_positions(user_id))
        format_open_positions(user_id, open_positions)
    else:
        closed = _run(state, fetch_closed_positions(state.client, user_id))
        format_closed_positions(user_id, closed)


@app.command()
def pnl(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Sodex account ID.")],
):
    """Show cumulative PnL and traded volume."""
    state = _state(ctx)
    if not state.settings.pnl_overview_url:
        raise typer.BadParameter(
            "pnl_overview_url must be configured.",
            param_hint=["SODEX_STATS_PNL_OVERVIEW_URL"],
        )
    overview = _run(state, state.client.fetch_pnl_overview(user_id))
    format_pnl_overview(user_id, overview)


@app.command("dex-status")
def dex_status(ctx: typer.Context):
    """Show exchange-wide trader counts and volume leaders."""
    state = _state(ctx)
    feed = StatsFeedClient(state.settings)
    status = _run(state, fetch_dex_status(feed))
    format_dex_status(status)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
