from __future__ import annotations

from .errors import ApiError, FetchError, SodexAPIError
from .sodex import SodexClient
from .stats_feed import StatsFeedClient

__all__ = [
    "ApiError",
    "FetchError",
    "SodexAPIError",
    "SodexClient",
    "StatsFeedClient",
]
