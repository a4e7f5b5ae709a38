"""Tests for the fixed-income accrual estimator.

Tests cover:
- Manual current value precedence
- Effective annual rate per reference index (CDI percent vs spread split)
- Day-count basis selection
- Compounding, zero elapsed days and monotonicity
- Unavailable estimates
- Index/instrument label normalization
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import pytest

from carteira.calculators.fixed_income import (
    day_count_basis,
    effective_annual_rate,
    estimate_current_value,
)
from carteira.models.enums import DayCountBasis, InstrumentType, ReferenceIndex, ValueSource
from carteira.schemas.fixed_income import FixedIncomePosition, ReferenceRates

RATES = ReferenceRates(
    cdi=Decimal("12.65"),
    selic_fallback=Decimal("12.25"),
    inflation=Decimal("4.5"),
)


def _position(**overrides: object) -> FixedIncomePosition:
    fields: dict[str, object] = {
        "id": "cdb-1",
        "principal": Decimal("1000"),
        "application_date": date(2024, 1, 1),
        "reference_index": ReferenceIndex.PRE,
        "contracted_rate": Decimal("10"),
    }
    fields.update(overrides)
    return FixedIncomePosition(**fields)


class TestManualValue:
    """A positive manual value always wins."""

    def test_manual_value_returned_verbatim(self) -> None:
        result = estimate_current_value(_position(manual_current_value=Decimal("1234.567")), date(2025, 1, 1), RATES)
        assert result.source == ValueSource.KNOWN
        assert result.value == Decimal("1234.567")

    def test_manual_value_without_principal(self) -> None:
        """Even an otherwise incomplete position is known when a manual value exists."""
        position = _position(principal=None, application_date=None, manual_current_value=Decimal("500"))
        result = estimate_current_value(position, date(2025, 1, 1), RATES)
        assert result.source == ValueSource.KNOWN

    def test_zero_manual_value_ignored(self) -> None:
        result = estimate_current_value(_position(manual_current_value=Decimal("0")), date(2025, 1, 1), RATES)
        assert result.source == ValueSource.ESTIMATED


class TestEffectiveAnnualRate:
    """Test the index → % a.a. mapping."""

    def test_pre(self) -> None:
        assert effective_annual_rate(ReferenceIndex.PRE, Decimal("11"), RATES) == Decimal("11")

    def test_pre_without_rate(self) -> None:
        assert effective_annual_rate(ReferenceIndex.PRE, None, RATES) is None

    def test_cdi_percent(self) -> None:
        """110 → 110% of CDI."""
        assert effective_annual_rate(ReferenceIndex.CDI, Decimal("110"), RATES) == Decimal("13.915")

    def test_cdi_spread(self) -> None:
        """2 → CDI + 2."""
        assert effective_annual_rate(ReferenceIndex.CDI, Decimal("2"), RATES) == Decimal("14.65")

    def test_cdi_threshold_is_percent(self) -> None:
        """Exactly 20 reads as 20% of CDI."""
        assert effective_annual_rate(ReferenceIndex.CDI, Decimal("20"), RATES) == Decimal("2.53")

    def test_cdi_without_rate(self) -> None:
        assert effective_annual_rate(ReferenceIndex.CDI, None, RATES) == Decimal("12.65")

    def test_selic(self) -> None:
        assert effective_annual_rate(ReferenceIndex.SELIC, Decimal("13"), RATES) == Decimal("13")
        assert effective_annual_rate(ReferenceIndex.SELIC, None, RATES) == Decimal("12.25")

    def test_inflation_linked(self) -> None:
        assert effective_annual_rate(ReferenceIndex.IPCA, Decimal("6"), RATES) == Decimal("10.5")
        assert effective_annual_rate(ReferenceIndex.IGPM, None, RATES) == Decimal("4.5")

    def test_other(self) -> None:
        assert effective_annual_rate(ReferenceIndex.OTHER, Decimal("9"), RATES) == Decimal("9")
        assert effective_annual_rate(ReferenceIndex.OTHER, None, RATES) is None
        assert effective_annual_rate(None, None, RATES) is None


class TestDayCountBasis:
    """Business days for CDI/SELIC and bank/treasury paper; calendar days otherwise."""

    def test_cdi_business(self) -> None:
        assert day_count_basis(_position(reference_index="CDI")) == DayCountBasis.BUSINESS_252

    def test_ipca_cdb_business(self) -> None:
        position = _position(reference_index="IPCA", instrument_type="CDB")
        assert day_count_basis(position) == DayCountBasis.BUSINESS_252

    def test_ipca_alone_calendar(self) -> None:
        assert day_count_basis(_position(reference_index="IPCA")) == DayCountBasis.CALENDAR_365

    def test_debenture_calendar(self) -> None:
        position = _position(reference_index="PRE", instrument_type="Debenture")
        assert day_count_basis(position) == DayCountBasis.CALENDAR_365


class TestEstimate:
    """Test compounding."""

    def test_zero_days_returns_principal(self) -> None:
        result = estimate_current_value(_position(), date(2024, 1, 1), RATES)
        assert result.source == ValueSource.ESTIMATED
        assert result.value == Decimal("1000")
        assert result.elapsed_days == 0

    def test_as_of_before_application(self) -> None:
        result = estimate_current_value(_position(), date(2023, 6, 1), RATES)
        assert result.value == Decimal("1000")

    def test_pre_one_year(self) -> None:
        """10% a.a. compounded daily on 365 calendar days."""
        position = _position(application_date=date(2023, 1, 1))
        result = estimate_current_value(position, date(2024, 1, 1), RATES)
        expected = Decimal("1000") * (1 + Decimal("10") / 100 / 365) ** 365
        assert result.value == expected.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert Decimal("1105") < result.value < Decimal("1106")
        assert result.basis == DayCountBasis.CALENDAR_365
        assert result.elapsed_days == 365
        assert result.annual_rate == Decimal("10")

    def test_cdi_business_days(self) -> None:
        """Monday → next Monday accrues five business days of CDI."""
        position = _position(reference_index="CDI", contracted_rate=None)
        result = estimate_current_value(position, date(2024, 1, 8), RATES)
        expected = Decimal("1000") * (1 + Decimal("12.65") / 100 / 252) ** 5
        assert result.elapsed_days == 5
        assert result.value == expected.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def test_holidays_reduce_accrual(self) -> None:
        rates = RATES.model_copy(update={"holidays": frozenset({date(2024, 1, 2)})})
        position = _position(reference_index="CDI", contracted_rate=None)
        result = estimate_current_value(position, date(2024, 1, 8), rates)
        assert result.elapsed_days == 4

    def test_percent_and_spread_differ(self) -> None:
        """CDI 110 (percent) and CDI 2 (spread) give different values."""
        as_of = date(2025, 1, 1)
        pct = estimate_current_value(_position(reference_index="CDI", contracted_rate=Decimal("110")), as_of, RATES)
        spread = estimate_current_value(_position(reference_index="CDI", contracted_rate=Decimal("2")), as_of, RATES)
        assert pct.annual_rate == Decimal("13.915")
        assert spread.annual_rate == Decimal("14.65")
        assert pct.value < spread.value

    def test_monotone_in_elapsed_days(self) -> None:
        """With a non-negative rate the value never decreases over time."""
        position = _position()
        values = [
            estimate_current_value(position, as_of, RATES).value
            for as_of in (date(2024, 1, 1), date(2024, 1, 2), date(2024, 3, 1), date(2024, 12, 31), date(2026, 1, 1))
        ]
        assert values == sorted(values)

    def test_defaults_to_configured_rates(self) -> None:
        result = estimate_current_value(_position(reference_index="SELIC", contracted_rate=None), date(2024, 2, 1))
        assert result.source == ValueSource.ESTIMATED
        assert result.value > Decimal("1000")


class TestUnavailable:
    """Missing inputs never raise."""

    def test_missing_principal(self) -> None:
        result = estimate_current_value(_position(principal=None), date(2025, 1, 1), RATES)
        assert result.source == ValueSource.UNAVAILABLE
        assert not result.available
        assert result.reason

    def test_negative_principal(self) -> None:
        result = estimate_current_value(_position(principal=Decimal("-5")), date(2025, 1, 1), RATES)
        assert result.source == ValueSource.UNAVAILABLE

    def test_missing_application_date(self) -> None:
        result = estimate_current_value(_position(application_date=None), date(2025, 1, 1), RATES)
        assert result.source == ValueSource.UNAVAILABLE

    def test_pre_without_rate(self) -> None:
        result = estimate_current_value(_position(contracted_rate=None), date(2025, 1, 1), RATES)
        assert result.source == ValueSource.UNAVAILABLE
        assert result.value is None


class TestLabelNormalization:
    """Free-form labels map onto canonical enums."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("cdi", ReferenceIndex.CDI),
            ("DI", ReferenceIndex.CDI),
            ("Selic", ReferenceIndex.SELIC),
            ("IPCA+", ReferenceIndex.IPCA),
            ("IGPM", ReferenceIndex.IGPM),
            ("Pré", ReferenceIndex.PRE),
            ("Prefixado", ReferenceIndex.PRE),
            ("Poupança", ReferenceIndex.OTHER),
        ],
    )
    def test_reference_index(self, label: str, expected: ReferenceIndex) -> None:
        assert _position(reference_index=label).reference_index == expected

    def test_blank_index_is_none(self) -> None:
        assert _position(reference_index="  ").reference_index is None

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("cdb", InstrumentType.CDB),
            ("Tesouro Direto", InstrumentType.TESOURO),
            ("Tesouro IPCA+ 2035", InstrumentType.TESOURO),
            ("Previdência", InstrumentType.PREVIDENCIA),
            ("Fundo", InstrumentType.OTHER),
        ],
    )
    def test_instrument_type(self, label: str, expected: InstrumentType) -> None:
        assert _position(instrument_type=label).instrument_type == expected
