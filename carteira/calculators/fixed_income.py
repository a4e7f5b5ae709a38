"""Fixed-income accrual estimator.

Projects the current value of a renda fixa position by compounding a daily
rate derived from its reference index:

  CDI / SELIC indexed, or LCI / LCA / CDB / Tesouro  → business days, 252/year
  everything else                                    → calendar days, 365/year

Effective annual rate by index (all % a.a.):
  PRE      contracted rate
  SELIC    contracted rate, else the SELIC fallback
  CDI      contracted >= 20 → "X% of CDI"; below 20 → "CDI + X"; none → CDI
  IPCA     inflation reference + contracted spread (0 if absent)
  IGP-M    same as IPCA
  other    contracted rate, else not computable

The >= 20 split between "percent of CDI" and "spread over CDI" is a business
rule and must stay as is.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from carteira.calculators.dates import business_days_between, calendar_days_between
from carteira.models.enums import DayCountBasis, InstrumentType, ReferenceIndex, ValueSource
from carteira.schemas.fixed_income import CurrentValue, FixedIncomePosition, ReferenceRates

logger = logging.getLogger(__name__)

# Contracted rates at or above this are read as "% of CDI"
CDI_PERCENT_THRESHOLD = Decimal("20")

_BUSINESS_DAY_INDICES = frozenset({ReferenceIndex.CDI, ReferenceIndex.SELIC})
_BUSINESS_DAY_INSTRUMENTS = frozenset(
    {InstrumentType.LCI, InstrumentType.LCA, InstrumentType.CDB, InstrumentType.TESOURO}
)


def _to_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def day_count_basis(position: FixedIncomePosition) -> DayCountBasis:
    """Pick the day-count convention for a position."""
    if position.reference_index in _BUSINESS_DAY_INDICES or position.instrument_type in _BUSINESS_DAY_INSTRUMENTS:
        return DayCountBasis.BUSINESS_252
    return DayCountBasis.CALENDAR_365


def effective_annual_rate(
    index: ReferenceIndex | None,
    contracted_rate: Decimal | None,
    rates: ReferenceRates,
) -> Decimal | None:
    """Effective % a.a. for an index/contracted-rate pair, or None if undetermined."""
    if index is ReferenceIndex.PRE:
        return contracted_rate

    if index is ReferenceIndex.SELIC:
        return contracted_rate if contracted_rate is not None else rates.selic_fallback

    if index is ReferenceIndex.CDI:
        if contracted_rate is None:
            return rates.cdi
        if contracted_rate >= CDI_PERCENT_THRESHOLD:
            # e.g. 110 → 110% of CDI
            return contracted_rate / 100 * rates.cdi
        # e.g. 2 → CDI + 2
        return rates.cdi + contracted_rate

    if index in (ReferenceIndex.IPCA, ReferenceIndex.IGPM):
        return rates.inflation + (contracted_rate if contracted_rate is not None else Decimal("0"))

    return contracted_rate


def elapsed_days(position: FixedIncomePosition, as_of: date, basis: DayCountBasis, rates: ReferenceRates) -> int:
    """Days elapsed since application under the given basis."""
    if basis is DayCountBasis.BUSINESS_252:
        return business_days_between(position.application_date, as_of, rates.holidays)
    return calendar_days_between(position.application_date, as_of)


def estimate_current_value(
    position: FixedIncomePosition,
    as_of: date,
    rates: ReferenceRates | None = None,
) -> CurrentValue:
    """Current value of a fixed-income position at as_of.

    A positive manual value always wins and is returned verbatim (KNOWN).
    Otherwise the value is estimated (ESTIMATED), or UNAVAILABLE when the
    principal, application date or rate is missing or degenerate.

    Args:
        position: The position as entered by the user.
        as_of: Evaluation date.
        rates: Benchmark rates; defaults to the configured reference rates.
    """
    if position.manual_current_value is not None and position.manual_current_value > 0:
        return CurrentValue(source=ValueSource.KNOWN, value=position.manual_current_value)

    if position.principal is None or position.principal <= 0:
        return CurrentValue(source=ValueSource.UNAVAILABLE, reason="principal missing or not positive")
    if position.application_date is None:
        return CurrentValue(source=ValueSource.UNAVAILABLE, reason="application date missing")

    if rates is None:
        rates = ReferenceRates.from_settings()

    basis = day_count_basis(position)
    days = elapsed_days(position, as_of, basis, rates)
    if days <= 0:
        return CurrentValue(
            source=ValueSource.ESTIMATED,
            value=position.principal,
            basis=basis,
            elapsed_days=0,
        )

    contracted = position.contracted_rate
    if contracted is not None and not contracted.is_finite():
        annual = None
    else:
        annual = effective_annual_rate(position.reference_index, contracted, rates)
    if annual is None or not annual.is_finite():
        logger.debug("No usable annual rate for position %s (index=%s)", position.id, position.reference_index)
        return CurrentValue(
            source=ValueSource.UNAVAILABLE,
            basis=basis,
            elapsed_days=days,
            reason="annual rate could not be determined",
        )

    daily = annual / 100 / basis.days_per_year
    value = position.principal * (1 + daily) ** days

    return CurrentValue(
        source=ValueSource.ESTIMATED,
        value=_to_money(value),
        annual_rate=annual,
        basis=basis,
        elapsed_days=days,
    )
