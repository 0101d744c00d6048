"""Endpoint and symbol constants for the Sodex APIs."""

DEFAULT_GATEWAY_URL = "https://mainnet-gw.sodex.dev"
DEFAULT_DATA_API_URL = "https://mainnet-data.sodex.dev"

# Community-maintained statistics feeds
DEFAULT_TRADERS_URL = (
    "https://raw.githubusercontent.com/Eliasdegemu61/Sodex-Tracker-new-v1/"
    "main/live_stats.json"
)
DEFAULT_VOLUME_URL = (
    "https://raw.githubusercontent.com/Eliasdegemu61/sodex-tracker-new-v1-data-2/"
    "main/volume_summary.json"
)

POSITIONS_PATH = "/api/v1/perps/positions"
SYMBOLS_PATH = "/bolt/symbols"
ACCOUNT_DETAILS_PATH = "/futures/fapi/user/v1/public/account/details"
SPOT_BALANCE_PATH = "/pro/p/user/balance/list"
MARK_PRICE_PATH = "/futures/fapi/market/v1/public/q/mark-price"
FALLBACK_MARK_PRICE_PATH = "/api/v1/perps/markets/mark-prices"

MAX_POSITIONS_PAGE_LIMIT = 1000

# Spot coin aliases applied after the variant prefix is stripped
TOKEN_ALIASES: dict[str, str] = {
    "SOSO": "SOSO",
    "WSOSO": "SOSO",
    "MAG7.ssi": "MAG7",
    "USDC": "USDC",
}

MARGIN_MODE_ISOLATED = 1
MARGIN_MODE_CROSS = 2

POSITION_SIDE_LONG = 2
POSITION_SIDE_SHORT = 3
