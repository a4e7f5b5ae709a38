"""Brazilian locale formatting for amounts and percentages.

Used in log lines and human-readable summaries.
"""

from __future__ import annotations

from decimal import Decimal


def format_brl(value: Decimal | float | int | None, decimals: int = 2) -> str:
    """Format as pt-BR number: 1234.5 -> "1.234,50"."""
    if value is None:
        return "-"
    d = Decimal(str(value))
    formatted = f"{d:,.{decimals}f}"
    # US: 1,234.50 -> pt-BR: 1.234,50
    return formatted.replace(",", "X").replace(".", ",").replace("X", ".")


def format_currency(value: Decimal | float | int | None, show_sign: bool = False) -> str:
    """Format as pt-BR currency: 1234.5 -> "R$ 1.234,50", with show_sign "R$ +1.234,50"."""
    if value is None:
        return "-"
    sign = "+" if show_sign and value >= 0 else ""
    return f"R$ {sign}{format_brl(value)}"


def format_percent(value: Decimal | float | int | None, decimals: int = 2, show_sign: bool = False) -> str:
    """Format a percentage value (already x100): 12.3456 -> "12,35%"."""
    if value is None:
        return "-"
    sign = "+" if show_sign and value >= 0 else ""
    return f"{sign}{format_brl(value, decimals)}%"
