"""HTTP routes for the financial computation engine and per-user storage."""
# ruff: noqa: B008

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from carteira.calculators.debts import card_spending_report, due_reminders
from carteira.calculators.fixed_income import estimate_current_value
from carteira.calculators.forecast import (
    debt_outflows,
    forecast_totals,
    refresh_auto_dividends,
    suggest_dividends,
)
from carteira.calculators.loan import apply_auto_advance, compute_loan, loan_progress
from carteira.calculators.portfolio import (
    calculate_portfolio,
    history_with_diff,
    merge_assets_by_ticker,
    normalize_ticker,
)
from carteira.calculators.xirr import solve_xirr
from carteira.db.engine import get_redis, get_session
from carteira.db.repository import (
    get_portfolio_history,
    load_assets,
    load_debts,
    load_forecast,
    load_loans,
    record_portfolio_snapshot,
    save_assets,
    save_debts,
    save_forecast,
    save_loans,
)
from carteira.integrations.quotes.service import get_quotes
from carteira.jobs.auto_advance import run_auto_advance
from carteira.schemas.api import (
    AsOfRequest,
    AutoAdvanceResponse,
    CardSpendingRequest,
    FixedIncomeRequest,
    ForecastRequest,
    LoanRequest,
    LoanSnapshotResponse,
    PortfolioRequest,
    XirrRequest,
)
from carteira.schemas.cashflows import XirrResult
from carteira.schemas.debts import MONTH_PATTERN, CardSpendingReport, DebtReminder, DebtsState
from carteira.schemas.fixed_income import CurrentValue
from carteira.schemas.forecast import ForecastTotals, MonthlyForecast
from carteira.schemas.loans import AutoAdvanceDecision, LoanContract
from carteira.schemas.portfolio import Asset, PortfolioMonth, PortfolioReport, Quote

logger = logging.getLogger(__name__)

router = APIRouter(tags=["engine"])


def _snapshot_response(contract: LoanContract, as_of: date) -> LoanSnapshotResponse:
    snapshot = compute_loan(contract, as_of)
    return LoanSnapshotResponse(
        contract_id=contract.id,
        computable=snapshot is not None,
        snapshot=snapshot,
        progress=loan_progress(contract, as_of),
    )


async def _quotes_for(assets: list[Asset], redis: aioredis.Redis) -> dict[str, Quote]:
    """Live quotes for the equity positions; fixed income needs none."""
    symbols = [normalize_ticker(a.ticker, a.is_international) for a in assets if not a.is_fixed_income]
    if not symbols:
        return {}
    quotes = await get_quotes(symbols, redis)
    logger.info("Fetched %d/%d quotes", len(quotes), len(set(symbols)))
    return quotes


# ── Stateless engine ─────────────────────────────────────────────────


@router.post("/loans/snapshot", response_model=LoanSnapshotResponse)
async def loan_snapshot(body: LoanRequest) -> LoanSnapshotResponse:
    """Instalment, balance and progress of one contract."""
    return _snapshot_response(body.contract, body.as_of or date.today())


@router.post("/loans/auto-advance", response_model=AutoAdvanceResponse)
async def loan_auto_advance(body: LoanRequest) -> AutoAdvanceResponse:
    """Apply this month's instalment to the contract if due; the caller stores the result."""
    contract, decision = apply_auto_advance(body.contract, body.as_of or date.today())
    return AutoAdvanceResponse(contract=contract, decision=decision)


@router.post("/fixed-income/estimate", response_model=CurrentValue)
async def fixed_income_estimate(body: FixedIncomeRequest) -> CurrentValue:
    """Current value of a fixed-income position."""
    return estimate_current_value(body.position, body.as_of or date.today())


@router.post("/returns/xirr", response_model=XirrResult)
async def xirr(body: XirrRequest) -> XirrResult:
    """Annualized return of dated cash flows."""
    rate = solve_xirr(body.cashflows)
    return XirrResult(rate=rate, defined=rate is not None)


@router.post("/portfolio/calculate", response_model=PortfolioReport)
async def portfolio_calculate(
    body: PortfolioRequest,
    redis: aioredis.Redis = Depends(get_redis),
) -> PortfolioReport:
    """Value every asset against live quotes and aggregate."""
    assets = merge_assets_by_ticker(body.assets) if body.merge else body.assets
    quotes = await _quotes_for(assets, redis)
    return calculate_portfolio(assets, quotes, body.as_of or date.today())


# ── Per-user storage ─────────────────────────────────────────────────


@router.get("/users/{user_id}/loans", response_model=list[LoanSnapshotResponse])
async def user_loans(
    user_id: str,
    as_of: date | None = None,
    db: AsyncSession = Depends(get_session),
) -> list[LoanSnapshotResponse]:
    """Stored contracts of a user with their computed state."""
    when = as_of or date.today()
    return [_snapshot_response(loan, when) for loan in await load_loans(db, user_id)]


@router.post("/users/{user_id}/loans/auto-advance", response_model=list[AutoAdvanceDecision])
async def user_loans_auto_advance(
    user_id: str,
    body: AsOfRequest,
    db: AsyncSession = Depends(get_session),
) -> list[AutoAdvanceDecision]:
    """Run the monthly auto-advance over a user's stored contracts."""
    return await run_auto_advance(db, user_id, body.as_of or date.today())


@router.get("/users/{user_id}/history", response_model=list[PortfolioMonth])
async def user_history(
    user_id: str,
    db: AsyncSession = Depends(get_session),
) -> list[PortfolioMonth]:
    """Monthly portfolio values with month-over-month change."""
    return history_with_diff(await get_portfolio_history(db, user_id))


@router.put("/users/{user_id}/loans", response_model=list[LoanSnapshotResponse])
async def user_loans_replace(
    user_id: str,
    loans: list[LoanContract],
    as_of: date | None = None,
    db: AsyncSession = Depends(get_session),
) -> list[LoanSnapshotResponse]:
    """Replace a user's stored contracts and return their state at as_of."""
    await save_loans(db, user_id, loans)
    when = as_of or date.today()
    return [_snapshot_response(loan, when) for loan in loans]


@router.put("/users/{user_id}/assets", response_model=list[Asset])
async def user_assets_replace(
    user_id: str,
    assets: list[Asset],
    db: AsyncSession = Depends(get_session),
) -> list[Asset]:
    """Replace a user's stored positions."""
    await save_assets(db, user_id, assets)
    return assets


@router.post("/users/{user_id}/portfolio/calculate", response_model=PortfolioReport)
async def user_portfolio_calculate(
    user_id: str,
    body: AsOfRequest,
    db: AsyncSession = Depends(get_session),
    redis: aioredis.Redis = Depends(get_redis),
) -> PortfolioReport:
    """Value a user's stored positions and record this month's portfolio value."""
    when = body.as_of or date.today()
    assets = merge_assets_by_ticker(await load_assets(db, user_id))
    quotes = await _quotes_for(assets, redis)
    report = calculate_portfolio(assets, quotes, when)
    if report.summary.valued_count:
        await record_portfolio_snapshot(db, user_id, report.summary.total_value, when)
    return report


# ── Debts and forecast ───────────────────────────────────────────────

MonthPath = Annotated[str, Path(pattern=MONTH_PATTERN)]


@router.post("/debts/card-spending", response_model=CardSpendingReport)
async def card_spending(body: CardSpendingRequest) -> CardSpendingReport:
    """Monthly card spending series against the monthly target."""
    return card_spending_report(body.debts, body.as_of or date.today(), body.months)


@router.post("/forecast/totals", response_model=ForecastTotals)
async def forecast_totals_route(body: ForecastRequest) -> ForecastTotals:
    """Income, expense and net totals of a monthly forecast."""
    outflows = debt_outflows(body.loans, body.debts, body.forecast.month)
    return forecast_totals(body.forecast, outflows)


@router.get("/users/{user_id}/debts", response_model=DebtsState)
async def user_debts(
    user_id: str,
    db: AsyncSession = Depends(get_session),
) -> DebtsState:
    """Stored card spending, card target and other debts."""
    return await load_debts(db, user_id)


@router.put("/users/{user_id}/debts", response_model=DebtsState)
async def user_debts_replace(
    user_id: str,
    body: DebtsState,
    db: AsyncSession = Depends(get_session),
) -> DebtsState:
    """Replace a user's card spending and other debts."""
    await save_debts(db, user_id, body)
    return body


@router.get("/users/{user_id}/debts/card-spending", response_model=CardSpendingReport)
async def user_card_spending(
    user_id: str,
    as_of: date | None = None,
    db: AsyncSession = Depends(get_session),
) -> CardSpendingReport:
    return card_spending_report(await load_debts(db, user_id), as_of or date.today())


@router.get("/users/{user_id}/debts/reminders", response_model=list[DebtReminder])
async def user_debt_reminders(
    user_id: str,
    as_of: date | None = None,
    db: AsyncSession = Depends(get_session),
) -> list[DebtReminder]:
    """Dated debts that are overdue or due within the reminder horizon."""
    debts = await load_debts(db, user_id)
    return due_reminders(debts.others, as_of or date.today())


@router.get("/users/{user_id}/forecast/{month}", response_model=MonthlyForecast)
async def user_forecast(
    user_id: str,
    month: MonthPath,
    db: AsyncSession = Depends(get_session),
) -> MonthlyForecast:
    return await load_forecast(db, user_id, month)


@router.put("/users/{user_id}/forecast/{month}", response_model=MonthlyForecast)
async def user_forecast_replace(
    user_id: str,
    month: MonthPath,
    body: MonthlyForecast,
    db: AsyncSession = Depends(get_session),
) -> MonthlyForecast:
    """Store the forecast of a month."""
    if body.month != month:
        raise HTTPException(status_code=422, detail=f"Body month {body.month} does not match {month}")
    await save_forecast(db, user_id, body)
    return body


@router.post("/users/{user_id}/forecast/{month}/dividends", response_model=MonthlyForecast)
async def user_forecast_dividends(
    user_id: str,
    month: MonthPath,
    as_of: date | None = None,
    db: AsyncSession = Depends(get_session),
    redis: aioredis.Redis = Depends(get_redis),
) -> MonthlyForecast:
    """Refill the month's automatic dividends from the stored portfolio valued at as_of."""
    assets = merge_assets_by_ticker(await load_assets(db, user_id))
    quotes = await _quotes_for(assets, redis)
    report = calculate_portfolio(assets, quotes, as_of or date.today())

    forecast = refresh_auto_dividends(await load_forecast(db, user_id, month), suggest_dividends(report))
    await save_forecast(db, user_id, forecast)
    return forecast


@router.get("/users/{user_id}/forecast/{month}/totals", response_model=ForecastTotals)
async def user_forecast_totals(
    user_id: str,
    month: MonthPath,
    db: AsyncSession = Depends(get_session),
) -> ForecastTotals:
    """Forecast totals with the user's stored loans and debts as outflows."""
    forecast = await load_forecast(db, user_id, month)
    outflows = debt_outflows(await load_loans(db, user_id), await load_debts(db, user_id), month)
    return forecast_totals(forecast, outflows)
