"""Financial calculators: amortized loans, debts, fixed-income accrual, XIRR, portfolio valuation, forecasts."""

from carteira.calculators.debts import card_spending_report, due_reminders
from carteira.calculators.fixed_income import estimate_current_value
from carteira.calculators.forecast import debt_outflows, forecast_totals, suggest_dividends
from carteira.calculators.loan import apply_auto_advance, check_auto_advance, compute_loan, loan_progress
from carteira.calculators.portfolio import calculate_portfolio, history_with_diff, merge_assets_by_ticker
from carteira.calculators.xirr import solve_xirr

__all__ = [
    "apply_auto_advance",
    "calculate_portfolio",
    "card_spending_report",
    "check_auto_advance",
    "compute_loan",
    "debt_outflows",
    "due_reminders",
    "estimate_current_value",
    "forecast_totals",
    "history_with_diff",
    "loan_progress",
    "merge_assets_by_ticker",
    "solve_xirr",
    "suggest_dividends",
]
