"""Portfolio valuation: per-asset projection and portfolio-level aggregates.

Equity/FII/ETF positions are valued from a market quote; fixed-income
positions go through the accrual estimator. A position that cannot be valued
is reported with an error and left out of every total, never counted as zero.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from carteira.calculators.fixed_income import estimate_current_value
from carteira.config import settings
from carteira.models.enums import ValueSource
from carteira.schemas.fixed_income import FixedIncomePosition, ReferenceRates
from carteira.schemas.portfolio import (
    Asset,
    CalculatedAsset,
    PortfolioMonth,
    PortfolioReport,
    PortfolioSummary,
    Quote,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _to_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def normalize_ticker(ticker: str, is_international: bool = False) -> str:
    """Upper-case and trim; B3 tickers get the exchange suffix ('petr4' -> 'PETR4.SA')."""
    symbol = ticker.upper().strip()
    suffix = settings.quotes.domestic_suffix
    if is_international or symbol.endswith(suffix):
        return symbol
    return f"{symbol}{suffix}"


def _unvalued(asset: Asset, ticker: str, error: str) -> CalculatedAsset:
    return CalculatedAsset(
        asset=asset,
        normalized_ticker=ticker,
        value_source=ValueSource.UNAVAILABLE,
        error=error,
    )


def _fixed_income_position(asset: Asset) -> FixedIncomePosition:
    return FixedIncomePosition(
        id=asset.id,
        name=asset.ticker,
        principal=asset.quantity * asset.average_price,
        application_date=asset.application_date,
        reference_index=asset.reference_index,
        contracted_rate=asset.contracted_rate,
        instrument_type=asset.instrument_type,
        manual_current_value=asset.manual_current_value,
        maturity_date=asset.maturity_date,
    )


def _calculate_fixed_income(asset: Asset, ticker: str, as_of: date, rates: ReferenceRates | None) -> CalculatedAsset:
    position = _fixed_income_position(asset)
    estimate = estimate_current_value(position, as_of, rates)
    if not estimate.available or estimate.value is None:
        return _unvalued(asset, ticker, f"Valor atual indisponível para {asset.ticker}: {estimate.reason}")

    cost = position.principal
    value = estimate.value
    pl = value - cost
    return CalculatedAsset(
        asset=asset,
        normalized_ticker=ticker,
        value_source=estimate.source,
        current_price=_to_money(value / asset.quantity) if asset.quantity > 0 else None,
        total_value=_to_money(value),
        change_percent=_to_money(pl / cost * 100) if cost > 0 else None,
        position_pl=_to_money(pl),
    )


def _calculate_equity(asset: Asset, ticker: str, quote: Quote | None) -> CalculatedAsset:
    if quote is None or not quote.usable:
        return _unvalued(asset, ticker, f"Não foi possível obter cotação para {asset.ticker}")

    price = quote.current_price
    avg = asset.average_price
    dy = quote.dividend_yield
    dividend_per_share = price * dy / _HUNDRED

    return CalculatedAsset(
        asset=asset,
        normalized_ticker=ticker,
        value_source=ValueSource.KNOWN,
        current_price=price,
        total_value=_to_money(price * asset.quantity),
        change_percent=_to_money((price - avg) / avg * 100) if avg > 0 else None,
        dividend_yield=dy,
        position_pl=_to_money((price - avg) * asset.quantity),
        yield_on_cost=_to_money(dividend_per_share / avg * 100) if avg > 0 else None,
        projected_annual_dividends=_to_money(dividend_per_share * asset.quantity),
    )


def calculate_asset(
    asset: Asset,
    quote: Quote | None,
    as_of: date,
    rates: ReferenceRates | None = None,
) -> CalculatedAsset:
    """Project one asset. Weight is filled in later by calculate_portfolio."""
    ticker = normalize_ticker(asset.ticker, asset.is_international)
    if asset.is_fixed_income:
        return _calculate_fixed_income(asset, ticker, as_of, rates)
    return _calculate_equity(asset, ticker, quote)


def summarize(calculated: Sequence[CalculatedAsset]) -> PortfolioSummary:
    """Totals over valued assets; weighted DY uses each asset's share of total value."""
    valued = [c for c in calculated if c.valued]
    total_value = sum((c.total_value for c in valued), start=_ZERO)
    total_pl = sum((c.position_pl for c in valued if c.position_pl is not None), start=_ZERO)

    weighted_dy = _ZERO
    if total_value > 0:
        weighted_dy = sum((c.dividend_yield * c.total_value / total_value for c in valued), start=_ZERO)

    return PortfolioSummary(
        total_value=_to_money(total_value),
        weighted_dividend_yield=_to_money(weighted_dy),
        total_pl=_to_money(total_pl),
        valued_count=len(valued),
        skipped_count=len(calculated) - len(valued),
    )


def calculate_portfolio(
    assets: Iterable[Asset],
    quotes: Mapping[str, Quote],
    as_of: date,
    rates: ReferenceRates | None = None,
) -> PortfolioReport:
    """Value every asset and aggregate.

    Args:
        assets: Raw positions.
        quotes: Quotes keyed by normalized ticker (e.g. 'PETR4.SA').
        as_of: Evaluation date for fixed-income estimates.
        rates: Benchmark rates; defaults to configured reference rates.

    Returns:
        PortfolioReport with per-asset projections (weights filled in) and summary.
    """
    calculated: list[CalculatedAsset] = []
    for asset in assets:
        try:
            ticker = normalize_ticker(asset.ticker, asset.is_international)
            calculated.append(calculate_asset(asset, quotes.get(ticker), as_of, rates))
        except (ArithmeticError, ValueError) as exc:
            logger.warning("Could not value asset %s: %s", asset.id, exc)
            calculated.append(_unvalued(asset, asset.ticker.upper().strip(), f"Erro ao calcular {asset.ticker}"))

    summary = summarize(calculated)
    if summary.total_value > 0:
        calculated = [
            c.model_copy(update={"portfolio_weight": _to_money(c.total_value / summary.total_value * 100)})
            if c.valued
            else c
            for c in calculated
        ]

    return PortfolioReport(assets=calculated, summary=summary)


def merge_assets_by_ticker(assets: Iterable[Asset]) -> list[Asset]:
    """Merge positions sharing (ticker, broker); quantities add, price is the weighted average.

    Fixed-income records are never merged: each one is a separate contract
    even when the label repeats. Order of first appearance is kept.
    """
    merged: dict[str, Asset] = {}
    for asset in assets:
        ticker = asset.ticker.upper().strip()

        if asset.is_fixed_income:
            merged[f"{ticker}__{asset.id}"] = asset.model_copy(update={"ticker": ticker})
            continue

        key = f"{ticker}__{asset.broker.value}"
        existing = merged.get(key)
        if existing is None:
            merged[key] = asset.model_copy(update={"ticker": ticker})
            continue

        total_qty = existing.quantity + asset.quantity
        if total_qty > 0:
            weighted = (existing.average_price * existing.quantity + asset.average_price * asset.quantity) / total_qty
        else:
            weighted = existing.average_price
        merged[key] = existing.model_copy(
            update={
                "quantity": total_qty,
                "average_price": _to_money(weighted),
                "sector": asset.sector or existing.sector,
            }
        )

    return list(merged.values())


def history_with_diff(months: Iterable[PortfolioMonth]) -> list[PortfolioMonth]:
    """Sort monthly snapshots and attach the change versus the previous month."""
    ordered = sorted(months, key=lambda m: m.month)
    out: list[PortfolioMonth] = []
    prev: PortfolioMonth | None = None
    for cur in ordered:
        diff = cur.value - prev.value if prev is not None else None
        diff_pct = _to_money(diff / prev.value * 100) if prev is not None and prev.value != 0 else None
        out.append(cur.model_copy(update={"diff": diff, "diff_percent": diff_pct}))
        prev = cur
    return out
