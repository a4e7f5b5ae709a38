"""Pydantic schemas for the monthly cash-flow forecast.

One MonthlyForecast per calendar month holds the expected income lines
(salary, freelance work, dividends, receivables) and the extra expenses the
user typed in. Debt outflows are not stored here; they are derived from the
stored loans and debts when the totals are computed.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from carteira.schemas.debts import MonthKey


class FreelanceEntry(BaseModel):
    """A freelance job. An explicit total wins over hours * hourly_rate + extra."""

    id: str
    work_date: date | None = None
    client: str | None = None
    description: str | None = None
    hours: Decimal | None = Field(default=None, ge=0)
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    extra: Decimal | None = None       # transport, bonus
    total: Decimal | None = None


class DividendForecast(BaseModel):
    id: str
    ticker: str
    amount: Decimal
    expected_date: date | None = None
    auto: bool = False                 # filled from the portfolio, replaced on refresh


class ReceivableEntry(BaseModel):
    id: str
    description: str
    amount: Decimal
    expected_date: date | None = None


class ExpenseEntry(BaseModel):
    id: str
    description: str
    amount: Decimal
    expected_date: date | None = None


class MonthlyForecast(BaseModel):
    month: MonthKey
    salary: Decimal | None = None
    freelances: list[FreelanceEntry] = Field(default_factory=list)
    dividends: list[DividendForecast] = Field(default_factory=list)
    receivables: list[ReceivableEntry] = Field(default_factory=list)
    expenses: list[ExpenseEntry] = Field(default_factory=list)


class DebtOutflows(BaseModel):
    """Debt payments falling in the forecast month."""

    financing: Decimal = Decimal("0")      # instalments of running loans
    card: Decimal = Decimal("0")           # card spending booked for the month
    other_debts: Decimal = Decimal("0")


class ForecastTotals(BaseModel):
    month: str
    salary: Decimal
    freelance_total: Decimal
    dividend_total: Decimal
    receivable_total: Decimal
    income_total: Decimal
    financing_total: Decimal
    card_total: Decimal
    other_debts_total: Decimal
    extra_expense_total: Decimal
    expense_total: Decimal
    net_total: Decimal
