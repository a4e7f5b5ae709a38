"""Request/response bodies for the HTTP API.

Every request accepts an optional as_of; the handler substitutes today's
date when it is omitted.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from carteira.schemas.cashflows import CashFlow
from carteira.schemas.debts import DebtsState
from carteira.schemas.fixed_income import FixedIncomePosition
from carteira.schemas.forecast import MonthlyForecast
from carteira.schemas.loans import AutoAdvanceDecision, LoanContract, LoanProgress, LoanSnapshot
from carteira.schemas.portfolio import Asset


class LoanRequest(BaseModel):
    contract: LoanContract
    as_of: date | None = None


class LoanSnapshotResponse(BaseModel):
    contract_id: str
    computable: bool
    snapshot: LoanSnapshot | None = None
    progress: LoanProgress | None = None


class AutoAdvanceResponse(BaseModel):
    contract: LoanContract
    decision: AutoAdvanceDecision


class FixedIncomeRequest(BaseModel):
    position: FixedIncomePosition
    as_of: date | None = None


class XirrRequest(BaseModel):
    cashflows: list[CashFlow] = Field(default_factory=list)


class PortfolioRequest(BaseModel):
    assets: list[Asset] = Field(default_factory=list)
    as_of: date | None = None
    merge: bool = False  # merge equal (ticker, broker) pairs first


class AsOfRequest(BaseModel):
    as_of: date | None = None


class CardSpendingRequest(BaseModel):
    debts: DebtsState
    as_of: date | None = None
    months: int | None = Field(default=None, ge=1, le=60)


class ForecastRequest(BaseModel):
    forecast: MonthlyForecast
    loans: list[LoanContract] = Field(default_factory=list)
    debts: DebtsState = Field(default_factory=DebtsState)
