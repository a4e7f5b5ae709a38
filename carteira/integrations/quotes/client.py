"""Async httpx client for Yahoo Finance quotes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from carteira.config import settings
from carteira.schemas.portfolio import Quote

logger = logging.getLogger(__name__)


class YahooQuoteClient:
    """Thin async wrapper around the Yahoo Finance chart and quoteSummary endpoints.

    Price:   GET {base_url}/v8/finance/chart/{symbol}?interval=1d&range=1d
    Yield:   GET {base_url}/v10/finance/quoteSummary/{symbol}?modules=summaryDetail

    Every failure degrades to "quote unavailable" (None); a missing dividend
    yield degrades to 0.
    """

    def __init__(self) -> None:
        self._base_url = settings.quotes.yahoo_base_url.rstrip("/")
        self._timeout = httpx.Timeout(settings.quotes.quote_timeout, connect=5.0)
        self._headers = {"User-Agent": settings.quotes.user_agent}

    async def fetch_quote(self, symbol: str) -> Quote | None:
        """Fetch the current quote for a normalized symbol (e.g. 'PETR4.SA')."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
                response = await client.get(
                    f"{self._base_url}/v8/finance/chart/{symbol}",
                    params={"interval": "1d", "range": "1d"},
                )
                response.raise_for_status()
                payload: dict = response.json()

                quote = self._parse_chart(symbol, payload)
                if quote is None:
                    return None

                dividend_yield = await self._fetch_dividend_yield(client, symbol)

        except httpx.TimeoutException:
            logger.warning("Yahoo Finance timeout for %s", symbol)
            return None

        except httpx.HTTPStatusError as exc:
            logger.warning("Yahoo Finance HTTP error %s for %s", exc.response.status_code, symbol)
            return None

        except httpx.HTTPError as exc:
            logger.warning("Yahoo Finance request failed for %s: %s", symbol, exc)
            return None

        return quote.model_copy(update={"dividend_yield": dividend_yield})

    async def _fetch_dividend_yield(self, client: httpx.AsyncClient, symbol: str) -> Decimal:
        """Trailing annual dividend yield in percent; 0 when unavailable."""
        try:
            response = await client.get(
                f"{self._base_url}/v10/finance/quoteSummary/{symbol}",
                params={"modules": "summaryDetail"},
            )
            response.raise_for_status()
            payload: dict = response.json()
        except httpx.HTTPError as exc:
            logger.debug("Dividend yield unavailable for %s: %s", symbol, exc)
            return Decimal("0")

        raw = _dig(payload, "quoteSummary", "result", 0, "summaryDetail", "trailingAnnualDividendYield", "raw")
        value = _to_decimal(raw)
        if value is None or value <= 0:
            return Decimal("0")
        return value * 100

    def _parse_chart(self, symbol: str, payload: dict) -> Quote | None:
        """Parse the chart JSON into a Quote; None when no positive price is present."""
        chart = payload.get("chart") or {}
        error = chart.get("error")
        if error:
            logger.warning("Yahoo Finance error for %s: %s", symbol, error.get("description"))
            return None

        meta = _dig(chart, "result", 0, "meta") or {}
        price = _to_decimal(meta.get("regularMarketPrice"))
        if price is None or price <= 0:
            logger.info("No price available for %s", symbol)
            return None

        previous = _to_decimal(meta.get("previousClose") or meta.get("chartPreviousClose"))

        as_of: datetime | None = None
        timestamp = meta.get("regularMarketTime")
        if timestamp:
            try:
                as_of = datetime.fromtimestamp(int(timestamp), tz=UTC)
            except (ValueError, TypeError, OverflowError, OSError):
                logger.debug("Could not parse regularMarketTime: %s", timestamp)

        return Quote(
            symbol=symbol,
            current_price=price,
            previous_close=previous,
            as_of=as_of,
        )


def _dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None at the first missing step."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(data, list) or len(data) <= step:
                return None
        elif not isinstance(data, dict):
            return None
        data = data[step] if isinstance(step, int) else data.get(step)
        if data is None:
            return None
    return data


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


# Module-level singleton
yahoo_client = YahooQuoteClient()
