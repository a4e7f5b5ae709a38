"""Holding models: portfolio positions, debts, monthly snapshots and forecasts.

All rows are owned by a user_id issued by the external auth provider.
All financial amounts use Numeric / Decimal, never float.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from carteira.models.base import Base, UserOwnedMixin


class AssetRecord(UserOwnedMixin, Base):
    """A stock/FII/ETF or fixed-income position."""

    __tablename__ = "assets"

    external_id: Mapped[str] = mapped_column(String(64), nullable=False, comment="Client-side asset id")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order in the saved list")

    ticker: Mapped[str] = mapped_column(String(32), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    average_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    sector: Mapped[str | None] = mapped_column(String(100))
    broker: Mapped[str] = mapped_column(String(30), nullable=False, comment="Broker enum value")
    is_international: Mapped[bool] = mapped_column(Boolean, default=False)

    # Fixed income ("renda fixa") fields
    instrument_type: Mapped[str | None] = mapped_column(String(30), comment="InstrumentType enum value")
    reference_index: Mapped[str | None] = mapped_column(String(10), comment="ReferenceIndex enum value")
    contracted_rate: Mapped[Decimal | None] = mapped_column(Numeric(9, 4), comment="% a.a.")
    application_date: Mapped[date | None] = mapped_column(Date)
    maturity_date: Mapped[date | None] = mapped_column(Date)
    manual_current_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    def __repr__(self) -> str:
        return f"<AssetRecord user={self.user_id} ticker={self.ticker}>"


class LoanContractRecord(UserOwnedMixin, Base):
    """An amortized debt with the last lender-reported snapshot."""

    __tablename__ = "loan_contracts"

    external_id: Mapped[str] = mapped_column(String(64), nullable=False, comment="Client-side contract id")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order in the saved list")

    lender: Mapped[str | None] = mapped_column(String(200))
    contract_number: Mapped[str | None] = mapped_column(String(64))
    principal: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    annual_nominal_rate: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), comment="% a.a.")
    term_months: Mapped[int | None] = mapped_column(Integer)
    start_date: Mapped[date | None] = mapped_column(Date)

    # Lender snapshot
    known_instalment: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    known_balance: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    known_remaining_months: Mapped[int | None] = mapped_column(Integer)
    last_auto_advance_month: Mapped[str | None] = mapped_column(String(7), comment="YYYY-MM")

    def __repr__(self) -> str:
        return f"<LoanContractRecord user={self.user_id} contract={self.external_id}>"


class PortfolioSnapshotRecord(UserOwnedMixin, Base):
    """Portfolio value recorded once per calendar month (upserted)."""

    __tablename__ = "portfolio_snapshots"
    __table_args__ = (UniqueConstraint("user_id", "month", name="uq_portfolio_snapshots_user_month"),)

    month: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    value: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)

    def __repr__(self) -> str:
        return f"<PortfolioSnapshotRecord user={self.user_id} month={self.month} value={self.value}>"


class CardSpendingRecord(UserOwnedMixin, Base):
    """Credit-card spending booked against a calendar month."""

    __tablename__ = "card_spending"

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order in the saved list")
    month: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    def __repr__(self) -> str:
        return f"<CardSpendingRecord user={self.user_id} month={self.month} amount={self.amount}>"


class OtherDebtRecord(UserOwnedMixin, Base):
    """A loose debt: a reminder when due_date is set, a note otherwise."""

    __tablename__ = "other_debts"

    external_id: Mapped[str] = mapped_column(String(64), nullable=False, comment="Client-side debt id")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order in the saved list")
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)

    def __repr__(self) -> str:
        return f"<OtherDebtRecord user={self.user_id} debt={self.external_id}>"


class DebtPreferencesRecord(UserOwnedMixin, Base):
    """Per-user debt settings; one row per user."""

    __tablename__ = "debt_preferences"
    __table_args__ = (UniqueConstraint("user_id", name="uq_debt_preferences_user"),)

    card_monthly_target: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), comment="Card budget per month")

    def __repr__(self) -> str:
        return f"<DebtPreferencesRecord user={self.user_id} target={self.card_monthly_target}>"


class MonthlyForecastRecord(UserOwnedMixin, Base):
    """The cash-flow forecast of one month, stored as a JSON document (upserted)."""

    __tablename__ = "monthly_forecasts"
    __table_args__ = (UniqueConstraint("user_id", "month", name="uq_monthly_forecasts_user_month"),)

    month: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, comment="Serialized MonthlyForecast")

    def __repr__(self) -> str:
        return f"<MonthlyForecastRecord user={self.user_id} month={self.month}>"
