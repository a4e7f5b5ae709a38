"""Quote service: orchestrates the Yahoo client and the Redis cache."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import redis.asyncio as aioredis

from carteira.config import settings
from carteira.integrations.quotes.client import yahoo_client
from carteira.schemas.portfolio import Quote

logger = logging.getLogger(__name__)

_CACHE_KEY_PREFIX = "quote:"


def _cache_key(symbol: str) -> str:
    return f"{_CACHE_KEY_PREFIX}{symbol}"


async def get_quote(symbol: str, redis: aioredis.Redis) -> Quote | None:
    """Quote for a normalized symbol, served from Redis when fresh.

    Steps:
    1. Check Redis cache (key: "quote:{symbol}", TTL from settings)
    2. On cache miss: call the Yahoo client
    3. Cache successful quotes only, so an outage is retried on the next call
    """
    normalized = symbol.strip().upper()

    try:
        cached_raw = await redis.get(_cache_key(normalized))
    except Exception:
        logger.warning("Quote cache read failed for %s", normalized)
        cached_raw = None

    if cached_raw:
        logger.debug("Quote cache hit: %s", normalized)
        try:
            return Quote.model_validate_json(cached_raw)
        except ValueError:
            logger.warning("Failed to deserialize cached quote for %s, re-fetching", normalized)

    quote = await yahoo_client.fetch_quote(normalized)
    if quote is None:
        return None

    try:
        await redis.setex(_cache_key(normalized), settings.quotes.quote_cache_ttl, quote.model_dump_json())
    except Exception:
        logger.warning("Failed to cache quote for %s", normalized)

    return quote


async def get_quotes(symbols: Iterable[str], redis: aioredis.Redis) -> dict[str, Quote]:
    """Fetch several symbols concurrently; unavailable quotes are left out."""
    unique = sorted({s.strip().upper() for s in symbols})
    results = await asyncio.gather(*(get_quote(s, redis) for s in unique))
    return {symbol: quote for symbol, quote in zip(unique, results, strict=True) if quote is not None}
