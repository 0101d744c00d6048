"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .clients import SodexClient
from .settings import StatsSettings


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Passed from the CLI to the commands to avoid global state and enable testing.
    """

    settings: StatsSettings
    logger: logging.Logger
    client: SodexClient
