from unittest.mock import MagicMock

import pytest
import requests

from sodex_stats.clients.errors import ApiError, FetchError
from sodex_stats.clients.sodex import SodexClient, base_symbol
from sodex_stats.settings import StatsSettings


def _response(payload=None, *, ok=True, status_code=200, reason="OK"):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = payload
    return response


@pytest.fixture
def settings():
    return StatsSettings(
        gateway_url="https://gw.test",
        data_api_url="https://data.test",
        pnl_overview_url="https://app.test/api/perps/pnl-overview",
        cache_ttl_seconds=30,
        positions_page_limit=2,
    )


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(settings, session):
    return SodexClient(settings, session=session)


def test_base_symbol_strips_quote():
    assert base_symbol("BTC-USD") == "BTC"
    assert base_symbol("SILVER-USD") == "SILVER"
    assert base_symbol("ETH") == "ETH"


@pytest.mark.asyncio
async def test_fetch_all_positions_follows_cursor(client, session):
    session.get.side_effect = [
        _response(
            {
                "code": 0,
                "message": "ok",
                "data": [{"position_id": 1}, {"position_id": 2}],
                "next_cursor": "page-2",
            }
        ),
        _response({"code": 0, "message": "ok", "data": [{"position_id": 3}]}),
    ]

    positions = await client.fetch_all_positions(42)

    assert [p["position_id"] for p in positions] == [1, 2, 3]
    assert session.get.call_count == 2

    first_params = session.get.call_args_list[0].kwargs["params"]
    second_params = session.get.call_args_list[1].kwargs["params"]
    assert first_params == {"account_id": "42", "limit": "2"}
    assert second_params == {"account_id": "42", "limit": "2", "cursor": "page-2"}
    assert session.get.call_args_list[0].args[0] == (
        "https://data.test/api/v1/perps/positions"
    )


@pytest.mark.asyncio
async def test_fetch_all_positions_stops_on_empty_cursor(client, session):
    session.get.return_value = _response(
        {"code": 0, "message": "ok", "data": [], "next_cursor": ""}
    )

    positions = await client.fetch_all_positions(42)

    assert positions == []
    assert session.get.call_count == 1


@pytest.mark.asyncio
async def test_fetch_positions_raises_on_http_error(client, session):
    session.get.return_value = _response(
        ok=False, status_code=503, reason="Service Unavailable"
    )

    with pytest.raises(FetchError, match="Failed to fetch positions: Service Unavailable"):
        await client.fetch_positions(42)


@pytest.mark.asyncio
async def test_fetch_positions_raises_on_api_code(client, session):
    session.get.return_value = _response(
        {"code": 10001, "message": "invalid account", "data": []}
    )

    with pytest.raises(ApiError, match="API error: invalid account") as exc_info:
        await client.fetch_positions(42)

    assert exc_info.value.code == 10001


@pytest.mark.asyncio
async def test_fetch_symbols_keys_by_symbol_id(client, session):
    session.get.return_value = _response(
        {
            "code": 0,
            "timestamp": 1,
            "data": {
                "a": {"symbolID": 1, "name": "BTC-USD", "baseCoin": "BTC"},
                "b": {"symbolID": 7, "name": "ETH-USD", "baseCoin": "ETH"},
            },
        }
    )

    symbols = await client.fetch_symbols()

    assert set(symbols) == {1, 7}
    assert symbols[7]["name"] == "ETH-USD"


@pytest.mark.asyncio
async def test_fetch_symbols_raises_on_api_code(client, session):
    session.get.return_value = _response({"code": 1, "data": {}})

    with pytest.raises(ApiError, match="retrieving symbols"):
        await client.fetch_symbols()


@pytest.mark.asyncio
async def test_account_details_are_cached(client, session):
    session.get.return_value = _response(
        {
            "code": 0,
            "data": {
                "positions": [{"symbol": "BTC-USD"}],
                "balances": [{"coin": "USDC", "walletBalance": "10"}],
            },
        }
    )

    first = await client.fetch_account_details(42)
    second = await client.fetch_account_details(42)
    open_positions = await client.fetch_open_positions(42)

    assert first is second
    assert open_positions == [{"symbol": "BTC-USD"}]
    assert session.get.call_count == 1
    assert session.get.call_args.kwargs["params"] == {"accountId": 42}


@pytest.mark.asyncio
async def test_account_details_failure_is_retried_next_call(client, session):
    session.get.side_effect = [
        _response({"code": 5, "data": None}),
        _response({"code": 0, "data": {"positions": [], "balances": []}}),
    ]

    with pytest.raises(ApiError, match="account details"):
        await client.fetch_account_details(42)

    details = await client.fetch_account_details(42)

    assert details == {"positions": [], "balances": []}
    assert session.get.call_count == 2


@pytest.mark.asyncio
async def test_spot_balance_returns_token_list(client, session):
    session.get.return_value = _response(
        {
            "code": 0,
            "data": {
                "spotBalance": [{"coin": "vBTC", "balance": "2"}],
                "totalUsdtAmount": 100000,
            },
        }
    )

    tokens = await client.fetch_spot_balance(42)
    data = await client.fetch_spot_balance_data(42)

    assert tokens == [{"coin": "vBTC", "balance": "2"}]
    assert data["totalUsdtAmount"] == 100000
    assert session.get.call_count == 1


@pytest.mark.asyncio
async def test_mark_prices_raise_on_http_error(client, session):
    session.get.return_value = _response(ok=False, status_code=502, reason="Bad Gateway")

    with pytest.raises(FetchError) as exc_info:
        await client.fetch_mark_prices()

    assert exc_info.value.status_code == 502
    assert "Bad Gateway" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fallback_mark_prices_builds_token_map(client, session):
    session.get.return_value = _response(
        {
            "code": 0,
            "data": [
                {"symbol": "SILVER-USD", "markPrice": "31.5"},
                {"symbol": "SOSO-USD", "markPrice": "0.8"},
                {"symbol": "BROKEN-USD"},
            ],
        }
    )

    prices = await client.fetch_fallback_mark_prices()

    assert prices == {"SILVER": 31.5, "SOSO": 0.8}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome",
    [
        _response(ok=False, status_code=500, reason="Internal Server Error"),
        _response({"code": 3, "data": []}),
        requests.ConnectionError("connection reset"),
    ],
    ids=["http-error", "api-code", "transport"],
)
async def test_fallback_mark_prices_degrade_to_empty(client, session, outcome):
    session.get.side_effect = [outcome]

    assert await client.fetch_fallback_mark_prices() == {}


@pytest.mark.asyncio
async def test_pnl_overview_raises_on_error_field(client, session):
    session.get.return_value = _response({"data": None, "error": "account not found"})

    with pytest.raises(ApiError, match="account not found"):
        await client.fetch_pnl_overview(42)


@pytest.mark.asyncio
async def test_pnl_overview_returns_data(client, session):
    session.get.return_value = _response(
        {
            "data": {"account_id": 42, "cumulative_quote_volume": "1500.5"},
            "fromCache": True,
        }
    )

    overview = await client.fetch_pnl_overview(42)

    assert overview["cumulative_quote_volume"] == "1500.5"
    assert session.get.call_args.args[0] == "https://app.test/api/perps/pnl-overview"
    assert session.get.call_args.kwargs["params"] == {"account_id": 42}


@pytest.mark.asyncio
async def test_pnl_overview_requires_url(session):
    client = SodexClient(StatsSettings(pnl_overview_url=None), session=session)

    with pytest.raises(ValueError, match="pnl_overview_url must be configured"):
        await client.fetch_pnl_overview(42)
