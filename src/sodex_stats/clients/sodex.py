"""Sodex REST API client.

Wraps the public gateway and data endpoints. Requests are blocking ``requests``
calls run in a worker thread; per-account and market-wide lookups go through a
``DeduplicatingCache`` so concurrent and repeated calls share one upstream hit.
"""

from __future__ import annotations

import asyncio
from typing import Any, TypedDict

import requests

from ..cache import DeduplicatingCache
from ..constants import (
    ACCOUNT_DETAILS_PATH,
    FALLBACK_MARK_PRICE_PATH,
    MARK_PRICE_PATH,
    POSITIONS_PATH,
    SPOT_BALANCE_PATH,
    SYMBOLS_PATH,
)
from ..logger import get_logger
from ..settings import StatsSettings
from .errors import ApiError, FetchError, SodexAPIError

logger = get_logger(__name__)


class PositionData(TypedDict, total=False):
    """Historical futures position from the data API."""

    account_id: int
    position_id: int
    user_id: int
    symbol_id: int
    margin_mode: int  # 1 = ISOLATED, 2 = CROSS
    position_side: int | str  # 2 = LONG, 3 = SHORT
    size: str
    initial_margin: str
    avg_entry_price: str
    cum_open_cost: str
    cum_trading_fee: str
    cum_closed_size: str
    avg_close_price: str
    max_size: str
    realized_pnl: str
    frozen_size: str
    leverage: int
    active: bool
    is_taken_over: bool
    take_over_price: str
    created_at: int
    updated_at: int


class SymbolData(TypedDict, total=False):
    symbolID: int
    name: str
    baseCoin: str
    quoteCoin: str


class OpenPositionData(TypedDict, total=False):
    symbol: str
    positionId: str
    contractType: str
    positionType: str
    positionSide: str  # LONG or SHORT
    positionSize: str
    entryPrice: str
    liquidationPrice: str
    isolatedMargin: str
    leverage: int
    unrealizedProfit: str
    realizedProfit: str
    cumTradingFee: str
    createdTime: int
    updatedTime: int


class FuturesBalanceData(TypedDict, total=False):
    coin: str
    walletBalance: str
    openOrderMarginFrozen: str
    availableBalance: str


class AccountDetailsData(TypedDict, total=False):
    positions: list[OpenPositionData]
    balances: list[FuturesBalanceData]
    isolatedMargin: str
    crossMargin: str
    availableMarginForIsolated: str
    availableMarginForCross: str


class SpotBalance(TypedDict, total=False):
    coin: str
    balance: str
    availableBalance: str
    usdValue: str


class SpotBalanceData(TypedDict, total=False):
    spotBalance: list[SpotBalance]
    totalUsdtAmount: float | str


class MarkPrice(TypedDict):
    s: str  # symbol, e.g. "BTC-USD"
    p: str  # price
    t: int  # timestamp


class PnLOverviewData(TypedDict, total=False):
    account_id: int
    ts_ms: int
    cumulative_pnl: str
    cumulative_quote_volume: str
    unrealized_pnl: str


def base_symbol(pair: str) -> str:
    """Strip the quote currency from a pair name ("BTC-USD" -> "BTC")."""
    return pair.split("-")[0]


class SodexClient:
    """Client for the Sodex gateway and data APIs."""

    def __init__(
        self,
        settings: StatsSettings,
        *,
        cache: DeduplicatingCache | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Endpoint, timeout and cache configuration
            cache: Shared request cache (one is created from settings if omitted)
            session: HTTP session, injectable for tests
        """
        self.settings = settings
        self.cache = (
            cache
            if cache is not None
            else DeduplicatingCache(settings.cache_ttl_seconds)
        )
        self._session = session if session is not None else requests.Session()
        self._timeout = settings.request_timeout_seconds

    async def _get_json(
        self, url: str, what: str, *, params: dict[str, Any] | None = None
    ) -> Any:
        logger.debug("GET %s params=%s", url, params)
        response = await asyncio.to_thread(
            self._session.get, url, params=params, timeout=self._timeout
        )
        if not response.ok:
            raise FetchError(what, response.status_code, response.reason)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(what, response.status_code, "invalid JSON body") from e

    @staticmethod
    def _check_code(payload: Any, what: str, *, with_message: bool = False) -> None:
        if not isinstance(payload, dict):
            raise ApiError(what, None)
        code = payload.get("code")
        if code != 0:
            message = payload.get("message") if with_message else None
            raise ApiError(what, code, message)

    # --- positions & symbols ---

    async def fetch_positions(
        self, account_id: str | int, cursor: str | None = None
    ) -> tuple[list[PositionData], str | None]:
        """Fetch one page of historical positions.

        Returns:
            The page's positions and the cursor for the next page, if any.
        """
        params: dict[str, Any] = {
            "account_id": str(account_id),
            "limit": str(self.settings.positions_page_limit),
        }
        if cursor:
            params["cursor"] = cursor

        payload = await self._get_json(
            f"{self.settings.data_api_url}{POSITIONS_PATH}", "positions", params=params
        )
        self._check_code(payload, "positions", with_message=True)
        return payload.get("data") or [], payload.get("next_cursor") or None

    async def fetch_all_positions(self, account_id: str | int) -> list[PositionData]:
        """Follow ``next_cursor`` until exhausted and return every position in order."""
        positions: list[PositionData] = []
        cursor: str | None = None
        page = 1

        while True:
            batch, cursor = await self.fetch_positions(account_id, cursor)
            positions.extend(batch)
            logger.debug(
                "Positions page %d for %s: %d items", page, account_id, len(batch)
            )
            if not cursor:
                break
            page += 1

        logger.info("Fetched %d positions for account %s", len(positions), account_id)
        return positions

    async def fetch_symbols(self) -> dict[int, SymbolData]:
        """Fetch the symbol table keyed by numeric symbol ID."""
        payload = await self._get_json(
            f"{self.settings.gateway_url}{SYMBOLS_PATH}?names", "symbols"
        )
        if not isinstance(payload, dict) or payload.get("code") != 0:
            code = payload.get("code") if isinstance(payload, dict) else None
            raise ApiError("symbols", code, "retrieving symbols")

        symbols = payload.get("data") or {}
        return {symbol["symbolID"]: symbol for symbol in symbols.values()}

    # --- account ---

    async def fetch_account_details(self, user_id: str | int) -> AccountDetailsData:
        async def _fetch() -> AccountDetailsData:
            payload = await self._get_json(
                f"{self.settings.gateway_url}{ACCOUNT_DETAILS_PATH}",
                "account details",
                params={"accountId": user_id},
            )
            self._check_code(payload, "account details")
            data: AccountDetailsData = payload.get("data") or {}
            balances = data.get("balances") or []
            logger.debug(
                "Fetched account details - positions: %d, balance: %s",
                len(data.get("positions") or []),
                balances[0].get("walletBalance") if balances else None,
            )
            return data

        return await self.cache.deduplicate(f"accountDetails_{user_id}", _fetch)

    async def fetch_open_positions(self, user_id: str | int) -> list[OpenPositionData]:
        account = await self.fetch_account_details(user_id)
        return account.get("positions") or []

    async def fetch_spot_balance_data(self, user_id: str | int) -> SpotBalanceData:
        """Fetch the spot balance list together with the upstream USD total."""

        async def _fetch() -> SpotBalanceData:
            payload = await self._get_json(
                f"{self.settings.gateway_url}{SPOT_BALANCE_PATH}",
                "spot balance",
                params={"accountId": user_id},
            )
            self._check_code(payload, "spot balance")
            data: SpotBalanceData = payload.get("data") or {}
            logger.debug(
                "Fetched spot balance - tokens: %d", len(data.get("spotBalance") or [])
            )
            return data

        return await self.cache.deduplicate(f"spotBalance_{user_id}", _fetch)

    async def fetch_spot_balance(self, user_id: str | int) -> list[SpotBalance]:
        data = await self.fetch_spot_balance_data(user_id)
        return data.get("spotBalance") or []

    # --- prices ---

    async def fetch_mark_prices(self) -> list[MarkPrice]:
        """Fetch futures mark prices from the primary market-data endpoint."""

        async def _fetch() -> list[MarkPrice]:
            payload = await self._get_json(
                f"{self.settings.gateway_url}{MARK_PRICE_PATH}", "mark prices"
            )
            self._check_code(payload, "mark prices")
            prices: list[MarkPrice] = payload.get("data") or []
            logger.debug("Fetched mark prices - count: %d", len(prices))
            return prices

        return await self.cache.deduplicate("markPrices", _fetch)

    async def fetch_fallback_mark_prices(self) -> dict[str, float]:
        """Fetch the secondary mark-price feed as a token -> USD price map.

        Any failure yields an empty map instead of raising; the empty map is
        cached like a normal result.
        """

        async def _fetch() -> dict[str, float]:
            try:
                payload = await self._get_json(
                    f"{self.settings.gateway_url}{FALLBACK_MARK_PRICE_PATH}",
                    "fallback mark prices",
                )
                self._check_code(payload, "fallback mark prices")
            except (SodexAPIError, requests.RequestException) as e:
                logger.warning("Fallback mark prices unavailable: %s", e)
                return {}

            prices: dict[str, float] = {}
            for quote in payload.get("data") or []:
                try:
                    prices[base_symbol(quote["symbol"])] = float(quote["markPrice"])
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug("Skipping malformed fallback quote %s: %s", quote, e)

            logger.debug("Fetched fallback mark prices - count: %d", len(prices))
            return prices

        return await self.cache.deduplicate("fallbackMarkPrices", _fetch)

    # --- pnl ---

    async def fetch_pnl_overview(self, user_id: str | int) -> PnLOverviewData:
        """Fetch cumulative PnL and volume from the dashboard PnL service."""
        url = self.settings.pnl_overview_url_required

        async def _fetch() -> PnLOverviewData:
            payload = await self._get_json(
                url, "PnL overview", params={"account_id": user_id}
            )
            if not isinstance(payload, dict):
                raise ApiError("PnL overview", None)
            if payload.get("error"):
                raise ApiError("PnL overview", None, str(payload["error"]))

            data: PnLOverviewData = payload.get("data") or {}
            logger.debug(
                "PnL overview fetched - volume: %s, from cache: %s",
                data.get("cumulative_quote_volume"),
                payload.get("fromCache"),
            )
            return data

        return await self.cache.deduplicate(f"pnl_overview_{user_id}", _fetch)
