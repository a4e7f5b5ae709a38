"""Monthly cash-flow forecast: expected income against expected outflows.

income   = salary + freelance + dividends + receivables
expenses = loan instalments + card spending + other debts due + extra expenses
net      = income - expenses
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from carteira.calculators.debts import card_month_total, other_debts_due_in_month
from carteira.calculators.loan import compute_loan
from carteira.schemas.debts import DebtsState
from carteira.schemas.forecast import (
    DebtOutflows,
    DividendForecast,
    ForecastTotals,
    FreelanceEntry,
    MonthlyForecast,
)
from carteira.schemas.loans import LoanContract
from carteira.schemas.portfolio import PortfolioReport

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_MONTHS_PER_YEAR = Decimal("12")


def _to_money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def month_start(month: str) -> date:
    """First day of a "YYYY-MM" month."""
    year, mon = month.split("-")
    return date(int(year), int(mon), 1)


def freelance_total(entry: FreelanceEntry) -> Decimal:
    """Explicit total, else hours * hourly_rate + extra."""
    if entry.total is not None:
        return entry.total
    extra = entry.extra or _ZERO
    if entry.hours is None or entry.hourly_rate is None:
        return extra
    return entry.hours * entry.hourly_rate + extra


# ---------------------------------------------------------------------------
# Dividends from the portfolio
# ---------------------------------------------------------------------------


def suggest_dividends(report: PortfolioReport) -> list[DividendForecast]:
    """One month of each valued position's projected annual dividends.

    Positions projecting nothing are left out.
    """
    suggestions = []
    for calc in report.assets:
        annual = calc.projected_annual_dividends
        if annual is None:
            continue
        amount = _to_money(annual / _MONTHS_PER_YEAR)
        if amount <= 0:
            continue
        suggestions.append(
            DividendForecast(
                id=f"auto-{calc.asset.id}",
                ticker=calc.asset.ticker.upper().strip(),
                amount=amount,
                auto=True,
            )
        )
    return suggestions


def refresh_auto_dividends(forecast: MonthlyForecast, suggestions: Iterable[DividendForecast]) -> MonthlyForecast:
    """Replace the portfolio-filled dividends; entries typed by the user stay."""
    manual = [d for d in forecast.dividends if not d.auto]
    fresh = [d for d in suggestions if d.auto and d.amount > 0]
    logger.debug("Forecast %s: %d manual, %d auto dividends", forecast.month, len(manual), len(fresh))
    return forecast.model_copy(update={"dividends": manual + fresh})


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def debt_outflows(loans: Iterable[LoanContract], debts: DebtsState, month: str) -> DebtOutflows:
    """Debt payments expected in the month.

    Loans are evaluated at the first day of the month; a computable loan with
    months left contributes its instalment.
    """
    start = month_start(month)
    financing = _ZERO
    for loan in loans:
        snapshot = compute_loan(loan, start)
        if snapshot is not None and snapshot.remaining_months > 0:
            financing += snapshot.instalment

    return DebtOutflows(
        financing=_to_money(financing),
        card=card_month_total(debts.card_spending, month),
        other_debts=other_debts_due_in_month(debts.others, month),
    )


def forecast_totals(forecast: MonthlyForecast, outflows: DebtOutflows | None = None) -> ForecastTotals:
    """Income, expense and net totals of a monthly forecast."""
    outflows = outflows or DebtOutflows()

    salary = forecast.salary or _ZERO
    freelances = sum((freelance_total(f) for f in forecast.freelances), _ZERO)
    dividends = sum((d.amount for d in forecast.dividends), _ZERO)
    receivables = sum((r.amount for r in forecast.receivables), _ZERO)
    extra_expenses = sum((e.amount for e in forecast.expenses), _ZERO)

    income = salary + freelances + dividends + receivables
    expenses = outflows.financing + outflows.card + outflows.other_debts + extra_expenses

    return ForecastTotals(
        month=forecast.month,
        salary=_to_money(salary),
        freelance_total=_to_money(freelances),
        dividend_total=_to_money(dividends),
        receivable_total=_to_money(receivables),
        income_total=_to_money(income),
        financing_total=_to_money(outflows.financing),
        card_total=_to_money(outflows.card),
        other_debts_total=_to_money(outflows.other_debts),
        extra_expense_total=_to_money(extra_expenses),
        expense_total=_to_money(expenses),
        net_total=_to_money(income - expenses),
    )
