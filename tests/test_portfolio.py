"""Tests for portfolio valuation.

Tests cover:
- Ticker normalization
- Equity valuation from quotes (P&L, yield on cost, projected dividends)
- Fixed-income valuation through the estimator
- Unvalued assets excluded from totals
- Weighted dividend yield and portfolio weights
- Merge by (ticker, broker)
- Monthly history diffs
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from carteira.calculators.portfolio import (
    calculate_asset,
    calculate_portfolio,
    history_with_diff,
    merge_assets_by_ticker,
    normalize_ticker,
)
from carteira.models.enums import Broker, InstrumentType, ValueSource
from carteira.schemas.portfolio import Asset, PortfolioMonth, Quote

AS_OF = date(2025, 1, 15)


def _equity(asset_id: str, ticker: str, qty: str, avg: str, **extra: object) -> Asset:
    return Asset(id=asset_id, ticker=ticker, quantity=Decimal(qty), average_price=Decimal(avg), **extra)


def _quote(symbol: str, price: str, dy: str = "0") -> Quote:
    return Quote(symbol=symbol, current_price=Decimal(price), dividend_yield=Decimal(dy))


class TestNormalizeTicker:
    def test_domestic_suffix(self) -> None:
        assert normalize_ticker(" petr4 ") == "PETR4.SA"

    def test_suffix_not_duplicated(self) -> None:
        assert normalize_ticker("PETR4.SA") == "PETR4.SA"

    def test_international(self) -> None:
        assert normalize_ticker("aapl", is_international=True) == "AAPL"


class TestCalculateAsset:
    """Test single-asset projections."""

    def test_equity(self) -> None:
        """100 × R$ 35 with average R$ 30 and DY 8%."""
        asset = _equity("a1", "PETR4", "100", "30")
        result = calculate_asset(asset, _quote("PETR4.SA", "35", "8"), AS_OF)
        assert result.value_source == ValueSource.KNOWN
        assert result.total_value == Decimal("3500.00")
        assert result.change_percent == Decimal("16.67")
        assert result.position_pl == Decimal("500.00")
        assert result.yield_on_cost == Decimal("9.33")
        assert result.projected_annual_dividends == Decimal("280.00")
        assert result.error is None

    def test_missing_quote(self) -> None:
        result = calculate_asset(_equity("a1", "XPTO3", "10", "5"), None, AS_OF)
        assert not result.valued
        assert result.value_source == ValueSource.UNAVAILABLE
        assert result.error == "Não foi possível obter cotação para XPTO3"

    def test_zero_price_quote(self) -> None:
        result = calculate_asset(_equity("a1", "XPTO3", "10", "5"), _quote("XPTO3.SA", "0"), AS_OF)
        assert not result.valued
        assert result.error is not None

    def test_zero_average_price(self) -> None:
        """Bonus shares: value and P&L, but no percentage change."""
        result = calculate_asset(_equity("a1", "ITSA4", "10", "0"), _quote("ITSA4.SA", "10"), AS_OF)
        assert result.total_value == Decimal("100.00")
        assert result.change_percent is None
        assert result.yield_on_cost is None

    def test_fixed_income_manual_value(self) -> None:
        asset = Asset(
            id="f1",
            ticker="CDB Banco X",
            quantity=Decimal("1"),
            average_price=Decimal("1000"),
            instrument_type=InstrumentType.CDB,
            manual_current_value=Decimal("1200"),
        )
        result = calculate_asset(asset, None, AS_OF)
        assert result.value_source == ValueSource.KNOWN
        assert result.total_value == Decimal("1200.00")
        assert result.position_pl == Decimal("200.00")
        assert result.change_percent == Decimal("20.00")

    def test_fixed_income_estimated(self) -> None:
        asset = Asset(
            id="f2",
            ticker="LCI",
            quantity=Decimal("1"),
            average_price=Decimal("5000"),
            instrument_type="LCI",
            reference_index="CDI",
            contracted_rate=Decimal("95"),
            application_date=date(2024, 1, 2),
        )
        result = calculate_asset(asset, None, AS_OF)
        assert result.value_source == ValueSource.ESTIMATED
        assert result.total_value > Decimal("5000")

    def test_fixed_income_unavailable(self) -> None:
        """No application date and no manual value → skipped with an error."""
        asset = Asset(
            id="f3",
            ticker="CRI",
            quantity=Decimal("1"),
            average_price=Decimal("1000"),
            instrument_type="CRI",
        )
        result = calculate_asset(asset, None, AS_OF)
        assert not result.valued
        assert "CRI" in result.error


class TestCalculatePortfolio:
    """Test aggregation."""

    def _report(self):
        assets = [
            _equity("a", "PETR4", "100", "30"),
            _equity("b", "MXRF11", "50", "20"),
            _equity("c", "XPTO3", "10", "5"),
        ]
        quotes = {
            "PETR4.SA": _quote("PETR4.SA", "35", "8"),
            "MXRF11.SA": _quote("MXRF11.SA", "30"),
        }
        return calculate_portfolio(assets, quotes, AS_OF)

    def test_totals_skip_unvalued(self) -> None:
        summary = self._report().summary
        assert summary.total_value == Decimal("5000.00")
        assert summary.total_pl == Decimal("1000.00")
        assert summary.valued_count == 2
        assert summary.skipped_count == 1

    def test_weighted_dividend_yield(self) -> None:
        """8% on 70% of the portfolio, 0% on the rest."""
        assert self._report().summary.weighted_dividend_yield == Decimal("5.60")

    def test_weights(self) -> None:
        weights = [a.portfolio_weight for a in self._report().assets]
        assert weights == [Decimal("70.00"), Decimal("30.00"), None]

    def test_empty_portfolio(self) -> None:
        report = calculate_portfolio([], {}, AS_OF)
        assert report.summary.total_value == Decimal("0.00")
        assert report.summary.weighted_dividend_yield == Decimal("0.00")
        assert report.assets == []

    def test_calculation_error_isolated(self) -> None:
        """One asset failing does not abort the others."""
        assets = [_equity("a", "PETR4", "100", "30")]
        with patch("carteira.calculators.portfolio.calculate_asset", side_effect=ValueError("bad input")):
            report = calculate_portfolio(assets, {}, AS_OF)
        assert report.assets[0].error == "Erro ao calcular PETR4"
        assert report.summary.skipped_count == 1


class TestMergeAssets:
    """Test merging positions held in the same broker."""

    def test_same_broker_merged(self) -> None:
        merged = merge_assets_by_ticker(
            [
                _equity("1", "PETR4", "100", "30", broker=Broker.XP),
                _equity("2", "petr4", "100", "40", broker=Broker.XP, sector="Petróleo"),
            ]
        )
        assert len(merged) == 1
        assert merged[0].quantity == Decimal("200")
        assert merged[0].average_price == Decimal("35.00")
        assert merged[0].sector == "Petróleo"
        assert merged[0].id == "1"

    def test_different_brokers_kept(self) -> None:
        merged = merge_assets_by_ticker(
            [
                _equity("1", "PETR4", "100", "30", broker=Broker.XP),
                _equity("2", "PETR4", "100", "40", broker=Broker.CLEAR),
            ]
        )
        assert [a.broker for a in merged] == [Broker.XP, Broker.CLEAR]

    def test_fixed_income_never_merged(self) -> None:
        merged = merge_assets_by_ticker(
            [
                Asset(id="1", ticker="CDB", quantity=Decimal("1"), average_price=Decimal("1000"), instrument_type="CDB"),
                Asset(id="2", ticker="CDB", quantity=Decimal("1"), average_price=Decimal("2000"), instrument_type="CDB"),
            ]
        )
        assert len(merged) == 2

    def test_order_of_first_appearance(self) -> None:
        merged = merge_assets_by_ticker(
            [
                _equity("1", "VALE3", "10", "60"),
                _equity("2", "PETR4", "10", "30"),
                _equity("3", "VALE3", "10", "70"),
            ]
        )
        assert [a.ticker for a in merged] == ["VALE3", "PETR4"]
        assert merged[0].average_price == Decimal("65.00")


class TestHistory:
    """Test month-over-month diffs."""

    def test_sorted_with_diffs(self) -> None:
        history = history_with_diff(
            [
                PortfolioMonth(month="2024-02", value=Decimal("1100")),
                PortfolioMonth(month="2024-01", value=Decimal("1000")),
                PortfolioMonth(month="2024-03", value=Decimal("990")),
            ]
        )
        assert [m.month for m in history] == ["2024-01", "2024-02", "2024-03"]
        assert [m.diff for m in history] == [None, Decimal("100"), Decimal("-110")]
        assert [m.diff_percent for m in history] == [None, Decimal("10.00"), Decimal("-10.00")]

    def test_zero_previous_value(self) -> None:
        history = history_with_diff(
            [
                PortfolioMonth(month="2024-01", value=Decimal("0")),
                PortfolioMonth(month="2024-02", value=Decimal("500")),
            ]
        )
        assert history[1].diff == Decimal("500")
        assert history[1].diff_percent is None
