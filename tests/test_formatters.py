"""Tests for pt-BR formatting helpers."""

from __future__ import annotations

from decimal import Decimal

from carteira.formatters import format_brl, format_currency, format_percent


class TestFormatBrl:
    def test_integer(self):
        assert format_brl(1000) == "1.000,00"

    def test_large(self):
        assert format_brl(Decimal("1234567.89")) == "1.234.567,89"

    def test_small(self):
        assert format_brl(Decimal("0.5")) == "0,50"

    def test_decimals(self):
        assert format_brl(Decimal("2.5"), decimals=0) == "2"

    def test_none(self):
        assert format_brl(None) == "-"


class TestFormatCurrency:
    def test_plain(self):
        assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"

    def test_show_sign(self):
        assert format_currency(Decimal("1234.5"), show_sign=True) == "R$ +1.234,50"

    def test_negative(self):
        assert format_currency(Decimal("-310.2"), show_sign=True) == "R$ -310,20"

    def test_none(self):
        assert format_currency(None) == "-"


class TestFormatPercent:
    def test_plain(self):
        assert format_percent(Decimal("12.3456")) == "12,35%"

    def test_show_sign(self):
        assert format_percent(Decimal("5.6"), show_sign=True) == "+5,60%"

    def test_none(self):
        assert format_percent(None) == "-"
