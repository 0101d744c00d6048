from __future__ import annotations

from .balance import (
    build_primary_price_map,
    calculate_spot_balance_usd,
    fetch_detailed_balance,
    fetch_total_balance,
)
from .dex_status import compute_trader_stats, fetch_dex_status
from .pnl import get_volume_from_pnl_overview
from .positions import enrich_positions, fetch_closed_positions
from .symbols import normalize_token_name

__all__ = [
    "build_primary_price_map",
    "calculate_spot_balance_usd",
    "compute_trader_stats",
    "enrich_positions",
    "fetch_closed_positions",
    "fetch_detailed_balance",
    "fetch_dex_status",
    "fetch_total_balance",
    "get_volume_from_pnl_overview",
    "normalize_token_name",
]
