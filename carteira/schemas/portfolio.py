"""Pydantic schemas for portfolio positions, quotes, and the calculated report."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from carteira.models.enums import Broker, InstrumentType, ReferenceIndex, ValueSource
from carteira.schemas.fixed_income import parse_instrument_type, parse_reference_index

# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------


class Asset(BaseModel):
    """A position as entered by the user.

    Setting instrument_type marks the record as fixed income; quantity and
    average_price then describe the applied amount.
    """

    id: str
    ticker: str
    quantity: Decimal
    average_price: Decimal
    sector: str | None = None
    broker: Broker = Broker.OTHER
    instrument_type: InstrumentType | None = None
    reference_index: ReferenceIndex | None = None
    contracted_rate: Decimal | None = None       # % a.a.
    application_date: date | None = None
    maturity_date: date | None = None
    manual_current_value: Decimal | None = None
    is_international: bool = False

    @field_validator("reference_index", mode="before")
    @classmethod
    def _normalize_index(cls, v: Any) -> ReferenceIndex | None:
        return parse_reference_index(v)

    @field_validator("instrument_type", mode="before")
    @classmethod
    def _normalize_instrument(cls, v: Any) -> InstrumentType | None:
        return parse_instrument_type(v)

    @property
    def is_fixed_income(self) -> bool:
        return self.instrument_type is not None


class Quote(BaseModel):
    """Market quote for one symbol, as returned by the market-data provider."""

    symbol: str
    current_price: Decimal
    previous_close: Decimal | None = None
    as_of: datetime | None = None
    dividend_yield: Decimal = Decimal("0")      # trailing 12 months, percent

    @property
    def usable(self) -> bool:
        return self.current_price > 0


# ---------------------------------------------------------------------------
# Calculated projection
# ---------------------------------------------------------------------------


class CalculatedAsset(BaseModel):
    """Read-only projection of an Asset with market-derived fields.

    Monetary fields are None when the position could not be valued; such
    assets are skipped in portfolio totals.
    """

    asset: Asset
    normalized_ticker: str
    value_source: ValueSource
    current_price: Decimal | None = None
    total_value: Decimal | None = None
    change_percent: Decimal | None = None
    dividend_yield: Decimal = Decimal("0")
    position_pl: Decimal | None = None
    portfolio_weight: Decimal | None = None      # percent of the valued portfolio
    yield_on_cost: Decimal | None = None         # DY over average price, percent
    projected_annual_dividends: Decimal | None = None
    error: str | None = None

    @property
    def valued(self) -> bool:
        return self.total_value is not None


class PortfolioSummary(BaseModel):
    """Aggregates over the valued assets only."""

    total_value: Decimal
    weighted_dividend_yield: Decimal
    total_pl: Decimal
    valued_count: int
    skipped_count: int


class PortfolioReport(BaseModel):
    assets: list[CalculatedAsset] = Field(default_factory=list)
    summary: PortfolioSummary


# ---------------------------------------------------------------------------
# Monthly history
# ---------------------------------------------------------------------------


class PortfolioMonth(BaseModel):
    """Portfolio value recorded for a calendar month."""

    month: str                                   # "YYYY-MM"
    value: Decimal
    diff: Decimal | None = None                  # vs previous recorded month
    diff_percent: Decimal | None = None
