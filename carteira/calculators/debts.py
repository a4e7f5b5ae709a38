"""Card spending series and other-debt reminders.

Card spending is booked per calendar month; the series always covers a fixed
window of months ending at the evaluation month, with empty months as zero.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from carteira.calculators.dates import add_months, month_key
from carteira.config import settings
from carteira.schemas.debts import (
    CardMonth,
    CardMonthOverMonth,
    CardSpendingEntry,
    CardSpendingReport,
    DebtReminder,
    DebtsState,
    OtherDebt,
)

_ZERO = Decimal("0")


def _to_money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _trailing_mean(values: list[Decimal], end: int, size: int) -> Decimal:
    window = values[max(0, end - size + 1) : end + 1]
    return _to_money(sum(window, _ZERO) / len(window))


def card_totals_by_month(entries: Iterable[CardSpendingEntry]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for entry in entries:
        totals[entry.month] += entry.amount
    return dict(totals)


def card_month_total(entries: Iterable[CardSpendingEntry], month: str) -> Decimal:
    """Card spending booked for one "YYYY-MM" month."""
    return _to_money(card_totals_by_month(entries).get(month, _ZERO))


def card_spending_report(state: DebtsState, as_of: date, months: int | None = None) -> CardSpendingReport:
    """Monthly card spending for the window ending at as_of's month.

    Each month carries 3- and 6-month trailing averages (shorter at the start
    of the window) and, when a monthly target is set, whether it was exceeded.
    """
    size = months or settings.debts.card_history_months
    first_of_month = as_of.replace(day=1)
    keys = [month_key(add_months(first_of_month, -offset)) for offset in range(size - 1, -1, -1)]

    totals = card_totals_by_month(state.card_spending)
    amounts = [totals.get(key, _ZERO) for key in keys]
    target = state.monthly_target

    series = [
        CardMonth(
            month=key,
            amount=_to_money(amount),
            moving_average_3=_trailing_mean(amounts, i, 3),
            moving_average_6=_trailing_mean(amounts, i, 6),
            above_target=amount > target if target is not None else None,
        )
        for i, (key, amount) in enumerate(zip(keys, amounts, strict=True))
    ]

    month_over_month = None
    if len(amounts) >= 2:
        last, previous = amounts[-1], amounts[-2]
        delta = last - previous
        percent = delta / previous * 100 if previous > 0 else _ZERO
        month_over_month = CardMonthOverMonth(
            last=_to_money(last),
            previous=_to_money(previous),
            delta=_to_money(delta),
            percent=_to_money(percent),
        )

    return CardSpendingReport(months=series, monthly_target=target, month_over_month=month_over_month)


# ---------------------------------------------------------------------------
# Other debts
# ---------------------------------------------------------------------------


def due_reminders(others: Iterable[OtherDebt], as_of: date, horizon_days: int | None = None) -> list[DebtReminder]:
    """Dated debts due on or before as_of + horizon, earliest first.

    Overdue debts stay in the list until the user removes them. Undated notes
    are never reminders.
    """
    horizon = settings.debts.reminder_horizon_days if horizon_days is None else horizon_days
    limit = as_of + timedelta(days=horizon)
    due = sorted(
        (debt for debt in others if debt.due_date is not None and debt.due_date <= limit),
        key=lambda debt: debt.due_date,
    )
    return [
        DebtReminder(
            debt=debt,
            days_until_due=(debt.due_date - as_of).days,
            overdue=debt.due_date < as_of,
        )
        for debt in due
    ]


def other_debts_due_in_month(others: Iterable[OtherDebt], month: str) -> Decimal:
    """Sum of the dated debts falling due in a "YYYY-MM" month."""
    total = sum(
        (debt.amount for debt in others if debt.due_date is not None and month_key(debt.due_date) == month),
        _ZERO,
    )
    return _to_money(total)
