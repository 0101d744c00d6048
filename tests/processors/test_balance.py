from unittest.mock import MagicMock

import pytest

from sodex_stats.clients.errors import ApiError, FetchError
from sodex_stats.clients.sodex import SodexClient
from sodex_stats.constants import (
    ACCOUNT_DETAILS_PATH,
    FALLBACK_MARK_PRICE_PATH,
    MARK_PRICE_PATH,
    SPOT_BALANCE_PATH,
)
from sodex_stats.domain import BalanceSummary, TokenBalance
from sodex_stats.processors.balance import (
    build_primary_price_map,
    calculate_spot_balance_usd,
    fetch_detailed_balance,
    fetch_total_balance,
    futures_wallet_balance,
)
from sodex_stats.settings import StatsSettings


def _response(payload=None, *, ok=True, status_code=200, reason="OK"):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = payload
    return response


def _routing_session(routes):
    """Session whose GET answers by URL path; values are payloads or responses."""
    session = MagicMock()

    def _get(url, params=None, timeout=None, **kwargs):
        for path, outcome in routes.items():
            if path in url:
                if isinstance(outcome, Exception):
                    raise outcome
                if isinstance(outcome, MagicMock):
                    return outcome
                return _response(outcome)
        raise AssertionError(f"unexpected URL {url}")

    session.get.side_effect = _get
    return session


def _account(wallet_balance="250.5"):
    balances = [] if wallet_balance is None else [
        {"coin": "USDC", "walletBalance": wallet_balance}
    ]
    return {"code": 0, "data": {"positions": [], "balances": balances}}


def _spot(tokens, total=0):
    return {"code": 0, "data": {"spotBalance": tokens, "totalUsdtAmount": total}}


def _marks(prices):
    return {
        "code": 0,
        "data": [{"s": f"{sym}-USD", "p": str(p), "t": 1} for sym, p in prices.items()],
    }


def _fallback(prices):
    return {
        "code": 0,
        "data": [{"symbol": f"{sym}-USD", "markPrice": str(p)} for sym, p in prices.items()],
    }


@pytest.fixture
def settings():
    return StatsSettings(gateway_url="https://gw.test", cache_ttl_seconds=30)


def test_build_primary_price_map_strips_quote_suffix():
    prices = build_primary_price_map(
        [{"s": "BTC-USD", "p": "50000", "t": 1}, {"s": "ETH-USD", "p": "3000.5", "t": 1}]
    )

    assert prices == {"BTC": 50000.0, "ETH": 3000.5}


def test_futures_wallet_balance_uses_first_entry():
    account = {
        "balances": [
            {"coin": "USDC", "walletBalance": "12.5"},
            {"coin": "OTHER", "walletBalance": "99"},
        ]
    }
    assert futures_wallet_balance(account) == 12.5


def test_futures_wallet_balance_defaults_to_zero():
    assert futures_wallet_balance({"balances": []}) == 0.0
    assert futures_wallet_balance({}) == 0.0
    assert futures_wallet_balance({"balances": [{"coin": "USDC"}]}) == 0.0


def test_spot_usd_excludes_usdc_without_a_price():
    tokens = [{"coin": "vBTC", "balance": "2"}, {"coin": "USDC", "balance": "100"}]

    total = calculate_spot_balance_usd(tokens, {"BTC": 50000.0}, {})

    assert total == 100000.0


def test_spot_usd_prices_usdc_when_a_feed_has_it():
    tokens = [{"coin": "vBTC", "balance": "2"}, {"coin": "USDC", "balance": "100"}]

    total = calculate_spot_balance_usd(tokens, {"BTC": 50000.0}, {"USDC": 1.0})

    assert total == 100100.0


def test_spot_usd_prefers_primary_over_fallback():
    tokens = [{"coin": "vETH", "balance": "1"}]

    total = calculate_spot_balance_usd(tokens, {"ETH": 3000.0}, {"ETH": 1.0})

    assert total == 3000.0


def test_spot_usd_uses_fallback_for_missing_primary():
    tokens = [{"coin": "SILVER", "balance": "10"}, {"coin": "WSOSO", "balance": "4"}]

    total = calculate_spot_balance_usd(tokens, {}, {"SILVER": 30.0, "SOSO": 0.5})

    assert total == 302.0


def test_spot_usd_skips_unpriced_and_zero_balances():
    tokens = [
        {"coin": "MYSTERY", "balance": "1000"},
        {"coin": "vBTC", "balance": "0"},
        {"coin": "MAG7.ssi", "balance": "3"},
    ]

    total = calculate_spot_balance_usd(tokens, {"BTC": 50000.0, "MAG7": 10.0}, {})

    assert total == 30.0


@pytest.mark.asyncio
async def test_fetch_total_balance_combines_spot_and_futures(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _account("250.5"),
            SPOT_BALANCE_PATH: _spot(
                [{"coin": "vBTC", "balance": "2"}, {"coin": "USDC", "balance": "100"}]
            ),
            MARK_PRICE_PATH: _marks({"BTC": 50000}),
            FALLBACK_MARK_PRICE_PATH: _fallback({}),
        }
    )
    client = SodexClient(settings, session=session)

    summary = await fetch_total_balance(client, 42)

    assert summary == BalanceSummary(
        spot_balance=100000.0, futures_balance=250.5, total_balance=100250.5
    )
    assert summary.total_balance == summary.spot_balance + summary.futures_balance


@pytest.mark.asyncio
async def test_fetch_total_balance_without_futures_balance(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _account(None),
            SPOT_BALANCE_PATH: _spot([{"coin": "vETH", "balance": "0.5"}]),
            MARK_PRICE_PATH: _marks({"ETH": 3001}),
            FALLBACK_MARK_PRICE_PATH: _fallback({}),
        }
    )
    client = SodexClient(settings, session=session)

    summary = await fetch_total_balance(client, 42)

    assert summary.futures_balance == 0.0
    assert summary.total_balance == summary.spot_balance == 1500.5


@pytest.mark.asyncio
async def test_fetch_total_balance_degrades_when_fallback_fails(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _account("10"),
            SPOT_BALANCE_PATH: _spot(
                [{"coin": "vBTC", "balance": "1"}, {"coin": "SILVER", "balance": "5"}]
            ),
            MARK_PRICE_PATH: _marks({"BTC": 50000}),
            FALLBACK_MARK_PRICE_PATH: _response(
                ok=False, status_code=500, reason="Internal Server Error"
            ),
        }
    )
    client = SodexClient(settings, session=session)

    summary = await fetch_total_balance(client, 42)

    assert summary.spot_balance == 50000.0
    assert summary.total_balance == 50010.0


@pytest.mark.asyncio
async def test_fetch_total_balance_aborts_on_primary_price_failure(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _account("10"),
            SPOT_BALANCE_PATH: _spot([{"coin": "vBTC", "balance": "1"}]),
            MARK_PRICE_PATH: {"code": 7, "data": []},
            FALLBACK_MARK_PRICE_PATH: _fallback({"BTC": 49000}),
        }
    )
    client = SodexClient(settings, session=session)

    with pytest.raises(ApiError, match="mark prices"):
        await fetch_total_balance(client, 42)

    assert "totalBalance_42" not in client.cache


@pytest.mark.asyncio
async def test_fetch_total_balance_aborts_on_account_http_error(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _response(ok=False, status_code=404, reason="Not Found"),
            SPOT_BALANCE_PATH: _spot([]),
            MARK_PRICE_PATH: _marks({}),
            FALLBACK_MARK_PRICE_PATH: _fallback({}),
        }
    )
    client = SodexClient(settings, session=session)

    with pytest.raises(FetchError, match="account details: Not Found"):
        await fetch_total_balance(client, 42)


@pytest.mark.asyncio
async def test_fetch_total_balance_reuses_cached_upstream_data(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _account("1"),
            SPOT_BALANCE_PATH: _spot([{"coin": "vBTC", "balance": "1"}]),
            MARK_PRICE_PATH: _marks({"BTC": 2}),
            FALLBACK_MARK_PRICE_PATH: _fallback({}),
        }
    )
    client = SodexClient(settings, session=session)

    first = await fetch_total_balance(client, 42)
    client.cache.invalidate("totalBalance_42")
    second = await fetch_total_balance(client, 42)

    assert first == second
    assert session.get.call_count == 4


@pytest.mark.asyncio
async def test_fetch_detailed_balance_uses_upstream_total(settings):
    session = _routing_session(
        {
            ACCOUNT_DETAILS_PATH: _account("100"),
            SPOT_BALANCE_PATH: _spot(
                [
                    {"coin": "vBTC", "balance": "0.5", "usdValue": "25000"},
                    {"coin": "wSOSO", "balance": "40"},
                    {"coin": "vETH", "balance": "0"},
                ],
                total="25040.5",
            ),
        }
    )
    client = SodexClient(settings, session=session)

    detailed = await fetch_detailed_balance(client, 42)

    assert detailed.spot_balance == 25040.5
    assert detailed.futures_balance == 100.0
    assert detailed.total_usd_value == 25140.5
    assert detailed.tokens == [
        TokenBalance(token="BTC", coin="vBTC", balance=0.5, usd_value=25000.0),
        TokenBalance(token="SOSO", coin="wSOSO", balance=40.0, usd_value=40.0),
    ]
