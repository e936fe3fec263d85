"""Native-currency/USD spot rate for alert valuation.

CoinGecko is asked first and Coinbase second.  A rate of ``0.0`` means
"unknown"; callers then show native-currency figures instead of USD.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)

COINGECKO_URL = "https://api.coingecko.com/api/v3/simple/price"
COINBASE_URL = "https://api.coinbase.com/v2/prices/{pair}/spot"
PRICE_TIMEOUT = 8


def _as_rate(value: Any) -> float:
    try:
        rate = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return rate if rate > 0 else 0.0


async def _get_json(session: aiohttp.ClientSession, url: str, params=None) -> Optional[Any]:
    try:
        async with session.get(url, params=params) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.warning("price lookup %s failed: %s", url, str(exc) or type(exc).__name__)
        return None


async def _lookup(session: aiohttp.ClientSession, price_id: str, pair: str) -> float:
    data = await _get_json(session, COINGECKO_URL, {"ids": price_id, "vs_currencies": "usd"})
    if isinstance(data, dict):
        rate = _as_rate((data.get(price_id) or {}).get("usd"))
        if rate:
            return rate
    data = await _get_json(session, COINBASE_URL.format(pair=pair))
    if isinstance(data, dict):
        return _as_rate((data.get("data") or {}).get("amount"))
    return 0.0


async def fetch_native_usd(
    session: Optional[aiohttp.ClientSession] = None,
    *,
    price_id: str = "ethereum",
    pair: str = "ETH-USD",
    timeout: float = PRICE_TIMEOUT,
) -> float:
    if session is not None:
        return await _lookup(session, price_id, pair)
    async with aiohttp.ClientSession(
        trust_env=True, timeout=aiohttp.ClientTimeout(total=timeout)
    ) as own_session:
        return await _lookup(own_session, price_id, pair)


__all__ = ["fetch_native_usd", "COINGECKO_URL", "COINBASE_URL"]
