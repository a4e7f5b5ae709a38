"""Pydantic schemas for the non-amortized debts: card spending and other debts.

Amortized contracts live in carteira.schemas.loans; these cover the rest of
what the user owes.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
MonthKey = Annotated[str, Field(pattern=MONTH_PATTERN)]


class CardSpendingEntry(BaseModel):
    """Credit-card spending booked against a calendar month.

    Several entries for the same month add up.
    """

    month: MonthKey
    amount: Decimal = Field(ge=0)


class OtherDebt(BaseModel):
    """A loose debt. With a due date it is a reminder, without one a note."""

    id: str
    description: str
    amount: Decimal = Field(gt=0)
    due_date: date | None = None

    @property
    def is_reminder(self) -> bool:
        return self.due_date is not None


class DebtsState(BaseModel):
    """Everything the user stores about card spending and other debts."""

    card_spending: list[CardSpendingEntry] = Field(default_factory=list)
    monthly_target: Decimal | None = Field(default=None, ge=0)   # card budget per month
    others: list[OtherDebt] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class CardMonth(BaseModel):
    """One month of the card spending series."""

    month: str
    amount: Decimal
    moving_average_3: Decimal
    moving_average_6: Decimal
    above_target: bool | None = None   # None when no target is set


class CardMonthOverMonth(BaseModel):
    last: Decimal
    previous: Decimal
    delta: Decimal
    percent: Decimal                   # 0 when the previous month is zero


class CardSpendingReport(BaseModel):
    months: list[CardMonth] = Field(default_factory=list)   # oldest first
    monthly_target: Decimal | None = None
    month_over_month: CardMonthOverMonth | None = None


class DebtReminder(BaseModel):
    """An other-debt whose due date falls inside the reminder horizon."""

    debt: OtherDebt
    days_until_due: int                # negative once overdue
    overdue: bool
