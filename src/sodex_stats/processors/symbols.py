from __future__ import annotations

from ..constants import TOKEN_ALIASES


def normalize_token_name(coin: str) -> str:
    """Map a spot coin to the symbol used by the mark-price feeds.

    Strips one leading ``v`` (vault variants such as ``vBTC``) and applies
    the known aliases, e.g. ``WSOSO`` -> ``SOSO`` and ``MAG7.ssi`` -> ``MAG7``.
    """
    normalized = coin[1:] if coin.startswith("v") else coin
    return TOKEN_ALIASES.get(normalized, normalized)


def display_token_name(coin: str) -> str:
    """Strip one leading ``v`` or ``w`` wrapper prefix for display."""
    if coin[:1] in ("v", "w"):
        return coin[1:]
    return coin
