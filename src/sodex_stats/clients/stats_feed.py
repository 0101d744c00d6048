"""Client for the community-maintained Sodex statistics feeds."""

from __future__ import annotations

import asyncio
from typing import Any, TypedDict

import backoff
import requests

from ..logger import get_logger
from ..settings import StatsSettings
from .errors import FetchError

logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


class TraderEntry(TypedDict, total=False):
    userId: str
    address: str
    pnl: str
    vol: str


def _is_permanent(exc: Exception) -> bool:
    return (
        isinstance(exc, FetchError) and exc.status_code not in TRANSIENT_STATUS_CODES
    )


class StatsFeedClient:
    """Fetches the trader leaderboard and volume summary JSON files."""

    def __init__(
        self, settings: StatsSettings, *, session: requests.Session | None = None
    ):
        self.settings = settings
        self._session = session if session is not None else requests.Session()

    async def _get_json(self, url: str, what: str) -> Any:
        def _on_backoff(details: Any) -> None:
            logger.warning(
                "Fetching %s failed (attempt %d of %d): %s",
                what,
                details["tries"],
                self.settings.stats_fetch_retries + 1,
                details.get("exception"),
            )

        @backoff.on_exception(
            backoff.expo,
            (requests.RequestException, FetchError),
            max_tries=self.settings.stats_fetch_retries + 1,
            giveup=_is_permanent,
            on_backoff=_on_backoff,
            jitter=backoff.full_jitter,
        )
        async def _get() -> Any:
            response = await asyncio.to_thread(
                self._session.get,
                url,
                timeout=self.settings.request_timeout_seconds,
                headers={"Cache-Control": "no-store"},
            )
            if not response.ok:
                raise FetchError(what, response.status_code, response.reason)
            return response.json()

        return await _get()

    async def fetch_traders(self) -> list[TraderEntry]:
        traders = await self._get_json(self.settings.traders_url, "traders data")
        if not isinstance(traders, list):
            raise ValueError(f"Unexpected traders payload: {type(traders).__name__}")
        return traders

    async def fetch_volume_summary(self) -> dict[str, Any]:
        volume = await self._get_json(self.settings.volume_url, "volume data")
        if not isinstance(volume, dict):
            raise ValueError(f"Unexpected volume payload: {type(volume).__name__}")
        return volume
