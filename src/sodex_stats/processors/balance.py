"""USD balance aggregation across the spot and futures books."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from ..clients.sodex import (
    AccountDetailsData,
    MarkPrice,
    SodexClient,
    SpotBalance,
    SpotBalanceData,
    base_symbol,
)
from ..domain import BalanceSummary, DetailedBalance, TokenBalance
from ..logger import get_logger
from ..units import parse_amount
from .symbols import display_token_name, normalize_token_name

logger = get_logger(__name__)


def build_primary_price_map(mark_prices: Iterable[MarkPrice]) -> dict[str, float]:
    """Build token -> USD price from primary mark prices ("BTC-USD" -> "BTC")."""
    return {base_symbol(mp["s"]): float(mp["p"]) for mp in mark_prices}


def futures_wallet_balance(account: AccountDetailsData) -> float:
    """Wallet balance of the first futures balance entry, or 0 when absent."""
    balances = account.get("balances") or []
    if not balances:
        return 0.0
    return parse_amount(balances[0].get("walletBalance"))


def calculate_spot_balance_usd(
    spot_tokens: Iterable[SpotBalance],
    primary_prices: dict[str, float],
    fallback_prices: dict[str, float],
) -> float:
    """Sum ``balance * price`` over spot tokens with a resolvable price.

    Prices come from the primary map first, then the fallback map. Tokens found
    in neither are left out of the sum.
    """
    total = 0.0
    for token in spot_tokens:
        amount = parse_amount(token.get("balance"))
        if amount == 0:
            continue

        normalized = normalize_token_name(token["coin"])
        price = primary_prices.get(normalized)
        if price is None:
            price = fallback_prices.get(normalized)
            if price is None:
                logger.info(
                    "No price for %s (%s) in either feed, skipping",
                    normalized,
                    token["coin"],
                )
                continue
            logger.debug("Using fallback price for %s: %s", normalized, price)

        usd_value = amount * price
        total += usd_value
        logger.debug(
            "Spot token %s normalized=%s amount=%s price=%s usd=%s",
            token["coin"],
            normalized,
            amount,
            price,
            usd_value,
        )
    return total


async def fetch_total_balance(client: SodexClient, user_id: str | int) -> BalanceSummary:
    """Compute the account's total USD balance from live mark prices.

    Args:
        client: Sodex API client (its cache also deduplicates this call)
        user_id: Sodex account ID

    Returns:
        Spot USD value, futures wallet balance and their sum.

    Raises:
        SodexAPIError: If account details, spot balance or primary mark prices
            cannot be fetched. A failing fallback feed only narrows pricing.
    """

    async def _compute() -> BalanceSummary:
        account, spot_tokens, mark_prices, fallback_prices = await asyncio.gather(
            client.fetch_account_details(user_id),
            client.fetch_spot_balance(user_id),
            client.fetch_mark_prices(),
            client.fetch_fallback_mark_prices(),
        )

        primary_prices = build_primary_price_map(mark_prices)
        spot_balance = calculate_spot_balance_usd(
            spot_tokens, primary_prices, fallback_prices
        )
        futures_balance = futures_wallet_balance(account)
        total_balance = spot_balance + futures_balance

        logger.info(
            "Balance for %s - spot: %.2f futures: %.2f total: %.2f",
            user_id,
            spot_balance,
            futures_balance,
            total_balance,
        )
        return BalanceSummary(
            spot_balance=spot_balance,
            futures_balance=futures_balance,
            total_balance=total_balance,
        )

    try:
        return await client.cache.deduplicate(f"totalBalance_{user_id}", _compute)
    except Exception as e:
        logger.error("Error calculating total balance for %s: %s", user_id, e)
        raise


def spot_token_breakdown(spot_data: SpotBalanceData) -> list[TokenBalance]:
    """Per-token display rows for tokens with a positive balance.

    ``usd_value`` is the upstream ``usdValue`` when positive, otherwise the raw
    balance.
    """
    tokens: list[TokenBalance] = []
    for token in spot_data.get("spotBalance") or []:
        balance = parse_amount(token.get("balance"))
        if balance <= 0:
            continue
        usd_value = parse_amount(token.get("usdValue"))
        tokens.append(
            TokenBalance(
                token=display_token_name(token["coin"]),
                coin=token["coin"],
                balance=balance,
                usd_value=usd_value if usd_value > 0 else balance,
            )
        )
    return tokens


async def fetch_detailed_balance(
    client: SodexClient, user_id: str | int
) -> DetailedBalance:
    """Balance using the exchange-computed spot total, with a token breakdown."""

    async def _compute() -> DetailedBalance:
        account, spot_data = await asyncio.gather(
            client.fetch_account_details(user_id),
            client.fetch_spot_balance_data(user_id),
        )

        futures_balance = futures_wallet_balance(account)
        spot_balance = parse_amount(spot_data.get("totalUsdtAmount"))
        tokens = spot_token_breakdown(spot_data)
        total_usd_value = spot_balance + futures_balance

        logger.info(
            "Detailed balance for %s - spot: %.2f futures: %.2f total: %.2f (%d tokens)",
            user_id,
            spot_balance,
            futures_balance,
            total_usd_value,
            len(tokens),
        )
        return DetailedBalance(
            total_usd_value=total_usd_value,
            tokens=tokens,
            futures_balance=futures_balance,
            spot_balance=spot_balance,
        )

    try:
        return await client.cache.deduplicate(f"detailedBalance_{user_id}", _compute)
    except Exception as e:
        logger.error("Error fetching detailed balance for %s: %s", user_id, e)
        raise
