"""Pydantic schemas for fixed-income ("renda fixa") positions and their estimates."""

from __future__ import annotations

import unicodedata
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from carteira.config import settings
from carteira.models.enums import DayCountBasis, InstrumentType, ReferenceIndex, ValueSource

# Free-form labels seen in user input → canonical index
_INDEX_ALIASES: dict[str, ReferenceIndex] = {
    "CDI": ReferenceIndex.CDI,
    "DI": ReferenceIndex.CDI,
    "SELIC": ReferenceIndex.SELIC,
    "IPCA": ReferenceIndex.IPCA,
    "IPCA+": ReferenceIndex.IPCA,
    "IGP-M": ReferenceIndex.IGPM,
    "IGPM": ReferenceIndex.IGPM,
    "PRE": ReferenceIndex.PRE,
    "PREFIXADO": ReferenceIndex.PRE,
    "PRE-FIXADO": ReferenceIndex.PRE,
}


def _fold(raw: str) -> str:
    """Upper-case and strip accents: 'Pré' -> 'PRE', 'Previdência' -> 'PREVIDENCIA'."""
    decomposed = unicodedata.normalize("NFKD", raw.strip().upper())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def parse_reference_index(raw: Any) -> ReferenceIndex | None:
    """Map a user-typed index label to a ReferenceIndex. Unknown labels become OTHER."""
    if raw is None or isinstance(raw, ReferenceIndex):
        return raw
    folded = _fold(str(raw))
    if not folded:
        return None
    return _INDEX_ALIASES.get(folded, ReferenceIndex.OTHER)


def parse_instrument_type(raw: Any) -> InstrumentType | None:
    """Map a user-typed instrument label ('Tesouro Direto', 'CDB', ...) to an InstrumentType."""
    if raw is None or isinstance(raw, InstrumentType):
        return raw
    folded = _fold(str(raw))
    if not folded:
        return None
    if folded.startswith("TESOURO"):
        return InstrumentType.TESOURO
    try:
        return InstrumentType(folded)
    except ValueError:
        return InstrumentType.OTHER


class FixedIncomePosition(BaseModel):
    """One fixed-income holding as entered by the user."""

    id: str | None = None
    name: str | None = None
    principal: Decimal | None = None           # amount applied
    application_date: date | None = None       # start of accrual
    reference_index: ReferenceIndex | None = None
    contracted_rate: Decimal | None = None     # % a.a.; spread, multiplier or flat rate
    instrument_type: InstrumentType | None = None
    manual_current_value: Decimal | None = None
    maturity_date: date | None = None

    @field_validator("reference_index", mode="before")
    @classmethod
    def _normalize_index(cls, v: Any) -> ReferenceIndex | None:
        return parse_reference_index(v)

    @field_validator("instrument_type", mode="before")
    @classmethod
    def _normalize_instrument(cls, v: Any) -> InstrumentType | None:
        return parse_instrument_type(v)


class ReferenceRates(BaseModel):
    """Benchmark rates (% a.a.) the estimator compounds against."""

    cdi: Decimal
    selic_fallback: Decimal
    inflation: Decimal
    holidays: frozenset[date] = Field(default_factory=frozenset)

    @classmethod
    def from_settings(cls) -> ReferenceRates:
        """Build the reference set from application settings."""
        return cls(
            cdi=settings.market.cdi_reference_rate,
            selic_fallback=settings.market.selic_fallback_rate,
            inflation=settings.market.inflation_reference_rate,
            holidays=settings.market.holidays,
        )


class CurrentValue(BaseModel):
    """Current value of a fixed-income position, tagged with where it came from."""

    source: ValueSource
    value: Decimal | None = None
    annual_rate: Decimal | None = None         # effective % a.a. used for the estimate
    basis: DayCountBasis | None = None
    elapsed_days: int | None = None
    reason: str | None = None                  # why the value is unavailable

    @property
    def available(self) -> bool:
        return self.source is not ValueSource.UNAVAILABLE
