"""Domain models for balances, positions and exchange statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TokenBalance:
    """A spot token holding valued in USD."""

    token: str  # display symbol
    coin: str  # raw symbol as reported upstream
    balance: float
    usd_value: float


@dataclass(frozen=True)
class BalanceSummary:
    """USD balance across the spot and futures books."""

    spot_balance: float
    futures_balance: float
    total_balance: float


@dataclass(frozen=True)
class DetailedBalance:
    """USD balance with the per-token spot breakdown."""

    total_usd_value: float
    tokens: list[TokenBalance]
    futures_balance: float
    spot_balance: float


@dataclass(frozen=True)
class EnrichedPosition:
    """A closed futures position with display fields resolved."""

    raw: dict[str, Any]
    pair_name: str
    margin_mode_label: str
    position_side_label: str
    realized_pnl_value: float
    trading_fee: float
    closed_size: float
    created_at_formatted: str

    @property
    def position_id(self) -> Any:
        return self.raw.get("position_id")


@dataclass(frozen=True)
class PairVolume:
    """Traded volume for one market pair."""

    pair: str
    volume: float


@dataclass(frozen=True)
class TraderStats:
    """Counts derived from the community trader list."""

    total_users: int
    users_in_profit: int
    users_in_loss: int


@dataclass(frozen=True)
class DexStatus:
    """Exchange-wide statistics snapshot."""

    volume_data: dict[str, Any] | None
    trader_stats: TraderStats | None
    last_updated: int  # epoch milliseconds
    top_spot: list[PairVolume] = field(default_factory=list)
    top_futures: list[PairVolume] = field(default_factory=list)
