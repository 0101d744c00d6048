from __future__ import annotations

from ..clients.sodex import PnLOverviewData
from ..units import parse_amount


def get_volume_from_pnl_overview(pnl_data: PnLOverviewData) -> float:
    """Cumulative quote volume traded, or 0 when unreported."""
    return parse_amount(pnl_data.get("cumulative_quote_volume") or "0")
