"""Pydantic schemas for amortized debts (financiamentos).

Pure data classes, no business logic. Used as inputs/outputs of
carteira.calculators.loan and the loans API.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from carteira.models.enums import AutoAdvanceStatus, ValueSource


class LoanContract(BaseModel):
    """One amortized debt (price system) plus the last lender-reported snapshot."""

    id: str
    lender: str | None = None
    contract_number: str | None = None
    principal: Decimal | None = None               # original financed amount
    annual_nominal_rate: Decimal | None = Field(default=None, ge=0)  # % a.a.
    term_months: int | None = None
    known_instalment: Decimal | None = None        # instalment as stated by the lender
    known_balance: Decimal | None = None           # outstanding balance from the lender app
    known_remaining_months: int | None = None
    start_date: date | None = None
    last_auto_advance_month: str | None = None     # "YYYY-MM" of the last applied instalment


class LoanSnapshot(BaseModel):
    """Derived state of a loan at an evaluation date."""

    instalment: Decimal
    instalment_source: ValueSource
    outstanding_balance: Decimal
    balance_source: ValueSource
    total_interest: Decimal            # PMT * n - P
    principal_paid: Decimal
    interest_paid: Decimal
    elapsed_months: int
    remaining_months: int
    payoff_date: date | None = None


class LoanProgress(BaseModel):
    """How far along the contract term the borrower is."""

    total_months: int
    elapsed_months: int
    remaining_months: int
    percent: Decimal                   # 0..100
    remaining_years: Decimal           # one decimal place


class AutoAdvanceDecision(BaseModel):
    """Result of the monthly instalment check.

    Only APPLY carries the new balance/remaining months; every other status
    leaves the contract untouched.
    """

    contract_id: str
    month_key: str                     # "YYYY-MM"
    status: AutoAdvanceStatus
    interest: Decimal | None = None
    instalment: Decimal | None = None
    amortization: Decimal | None = None
    previous_balance: Decimal | None = None
    new_balance: Decimal | None = None
    new_remaining_months: int | None = None

    @property
    def idempotency_key(self) -> str:
        return f"{self.contract_id}:{self.month_key}"

    @property
    def applied(self) -> bool:
        return self.status is AutoAdvanceStatus.APPLY
