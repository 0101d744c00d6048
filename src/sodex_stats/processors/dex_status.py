"""Exchange-wide statistics from the community feeds."""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import Any

from ..clients.stats_feed import StatsFeedClient, TraderEntry
from ..domain import DexStatus, PairVolume, TraderStats
from ..logger import get_logger
from ..units import parse_amount

logger = get_logger(__name__)


def compute_trader_stats(traders: Iterable[TraderEntry]) -> TraderStats:
    """Count traders overall and by the sign of their PnL.

    Traders with exactly zero PnL count toward the total only.
    """
    total = in_profit = in_loss = 0
    for trader in traders:
        total += 1
        pnl = parse_amount(trader.get("pnl"))
        if pnl > 0:
            in_profit += 1
        elif pnl < 0:
            in_loss += 1
    return TraderStats(
        total_users=total, users_in_profit=in_profit, users_in_loss=in_loss
    )


def _pair_volumes(entries: Any) -> list[PairVolume]:
    if not isinstance(entries, list):
        return []
    return [
        PairVolume(pair=str(entry.get("pair", "")), volume=parse_amount(entry.get("volume")))
        for entry in entries
        if isinstance(entry, dict)
    ]


async def fetch_dex_status(feed: StatsFeedClient) -> DexStatus:
    """Fetch the trader list and volume summary and build a snapshot.

    Raises:
        FetchError: If either feed stays unavailable after retries.
        ValueError: If a feed returns an unexpected payload shape.
    """
    logger.info("Fetching Dex status data from statistics feeds")
    traders = await feed.fetch_traders()
    trader_stats = compute_trader_stats(traders)

    volume_data = await feed.fetch_volume_summary()
    all_time = volume_data.get("all_time_stats") or {}

    status = DexStatus(
        volume_data=volume_data,
        trader_stats=trader_stats,
        last_updated=int(time.time() * 1000),
        top_spot=_pair_volumes(all_time.get("top_5_spot")),
        top_futures=_pair_volumes(all_time.get("top_5_futures")),
    )
    logger.info(
        "Dex status: %d traders (%d in profit, %d in loss)",
        trader_stats.total_users,
        trader_stats.users_in_profit,
        trader_stats.users_in_loss,
    )
    return status
