from __future__ import annotations

from .formatter import (
    format_balance_summary,
    format_closed_positions,
    format_detailed_balance,
    format_dex_status,
    format_open_positions,
    format_pnl_overview,
)

__all__ = [
    "format_balance_summary",
    "format_closed_positions",
    "format_detailed_balance",
    "format_dex_status",
    "format_open_positions",
    "format_pnl_overview",
]
