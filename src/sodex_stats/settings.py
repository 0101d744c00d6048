"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import tomllib
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    DEFAULT_DATA_API_URL,
    DEFAULT_GATEWAY_URL,
    DEFAULT_TRADERS_URL,
    DEFAULT_VOLUME_URL,
    MAX_POSITIONS_PAGE_LIMIT,
)

load_dotenv()


class StatsSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with SODEX_STATS_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- endpoints ---
    gateway_url: str = DEFAULT_GATEWAY_URL
    data_api_url: str = DEFAULT_DATA_API_URL
    pnl_overview_url: str | None = None
    traders_url: str = DEFAULT_TRADERS_URL
    volume_url: str = DEFAULT_VOLUME_URL

    # --- caching / transport ---
    cache_ttl_seconds: float = Field(
        default=30.0,
        ge=0,
        description="How long a completed upstream response is reused. 0 disables reuse.",
    )
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    positions_page_limit: int = Field(
        default=MAX_POSITIONS_PAGE_LIMIT, ge=1, le=MAX_POSITIONS_PAGE_LIMIT
    )
    stats_fetch_retries: int = Field(default=3, ge=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SODEX_STATS_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator(
        "gateway_url",
        "data_api_url",
        "pnl_overview_url",
        "traders_url",
        "volume_url",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("SODEX_STATS_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    # Try default locations
                    local_config = Path("sodex-stats.toml")
                    user_config = Path.home() / ".config" / "sodex-stats" / "config.toml"
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [sodex_stats]
                body = data.get("sodex_stats", data)
                if not isinstance(body, dict):
                    return {}
                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the effective config as a plain dict."""
        return self.model_dump()

    @property
    def pnl_overview_url_required(self) -> str:
        """Get pnl_overview_url, raising ValueError if not set."""
        if self.pnl_overview_url is None:
            raise ValueError("pnl_overview_url must be configured")
        return self.pnl_overview_url
