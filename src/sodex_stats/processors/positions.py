from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime

from ..clients.sodex import PositionData, SodexClient, SymbolData
from ..constants import (
    MARGIN_MODE_ISOLATED,
    POSITION_SIDE_LONG,
    POSITION_SIDE_SHORT,
)
from ..domain import EnrichedPosition
from ..logger import get_logger
from ..units import parse_amount

logger = get_logger(__name__)


def _is_closed(position: PositionData) -> bool:
    return (
        parse_amount(position.get("cum_closed_size")) > 0
        and parse_amount(position.get("avg_close_price")) > 0
    )


def position_side_label(side: int | str | None) -> str:
    try:
        side_value = int(side)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return "UNKNOWN"
    if side_value == POSITION_SIDE_LONG:
        return "LONG"
    if side_value == POSITION_SIDE_SHORT:
        return "SHORT"
    return "UNKNOWN"


def format_timestamp_ms(ts_ms: int | None) -> str:
    if not ts_ms:
        return ""
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def enrich_positions(
    positions: Iterable[PositionData], symbols: dict[int, SymbolData]
) -> list[EnrichedPosition]:
    """Keep closed positions and attach display labels and parsed numbers.

    A position counts as closed when both its closed size and average close
    price are positive. Unknown symbol IDs are shown as ``SYMBOL_<id>``.
    """
    enriched: list[EnrichedPosition] = []
    for position in positions:
        if not _is_closed(position):
            continue

        symbol_id = position.get("symbol_id")
        symbol = symbols.get(symbol_id) if symbol_id is not None else None
        pair_name = (symbol or {}).get("name") or f"SYMBOL_{symbol_id}"

        enriched.append(
            EnrichedPosition(
                raw=dict(position),
                pair_name=pair_name,
                margin_mode_label=(
                    "ISOLATED"
                    if position.get("margin_mode") == MARGIN_MODE_ISOLATED
                    else "CROSS"
                ),
                position_side_label=position_side_label(position.get("position_side")),
                realized_pnl_value=parse_amount(position.get("realized_pnl")),
                trading_fee=parse_amount(position.get("cum_trading_fee")),
                closed_size=parse_amount(position.get("cum_closed_size")),
                created_at_formatted=format_timestamp_ms(position.get("created_at")),
            )
        )

    logger.debug("Enriched %d closed positions", len(enriched))
    return enriched


async def fetch_closed_positions(
    client: SodexClient, account_id: str | int
) -> list[EnrichedPosition]:
    """Fetch all historical positions and the symbol table, then enrich."""
    positions, symbols = await asyncio.gather(
        client.fetch_all_positions(account_id),
        client.fetch_symbols(),
    )
    return enrich_positions(positions, symbols)
