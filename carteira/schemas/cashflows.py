"""Pydantic schemas for dated cash flows and the XIRR result."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel


class CashFlow(BaseModel):
    """A signed, dated amount: negative = money invested, positive = money received."""

    date: dt.date
    amount: Decimal


class XirrResult(BaseModel):
    """Annualized internal rate of return; rate is None when no root exists."""

    rate: float | None = None
    defined: bool
