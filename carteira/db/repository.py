"""Per-user storage of raw entity lists.

The engine never persists derived values: only what the user entered, the
last lender snapshot of each loan, monthly portfolio snapshots and monthly
forecasts. Saving a list replaces the user's previous list.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from carteira.calculators.dates import month_key
from carteira.models.holdings import (
    AssetRecord,
    CardSpendingRecord,
    DebtPreferencesRecord,
    LoanContractRecord,
    MonthlyForecastRecord,
    OtherDebtRecord,
    PortfolioSnapshotRecord,
)
from carteira.schemas.debts import CardSpendingEntry, DebtsState, OtherDebt
from carteira.schemas.forecast import MonthlyForecast
from carteira.schemas.loans import LoanContract
from carteira.schemas.portfolio import Asset, PortfolioMonth

logger = logging.getLogger(__name__)


# ── Mapping ──────────────────────────────────────────────────────────


def loan_to_record(user_id: str, loan: LoanContract, position: int = 0) -> LoanContractRecord:
    return LoanContractRecord(
        user_id=user_id,
        position=position,
        external_id=loan.id,
        lender=loan.lender,
        contract_number=loan.contract_number,
        principal=loan.principal,
        annual_nominal_rate=loan.annual_nominal_rate,
        term_months=loan.term_months,
        start_date=loan.start_date,
        known_instalment=loan.known_instalment,
        known_balance=loan.known_balance,
        known_remaining_months=loan.known_remaining_months,
        last_auto_advance_month=loan.last_auto_advance_month,
    )


def record_to_loan(row: LoanContractRecord) -> LoanContract:
    return LoanContract(
        id=row.external_id,
        lender=row.lender,
        contract_number=row.contract_number,
        principal=row.principal,
        annual_nominal_rate=row.annual_nominal_rate,
        term_months=row.term_months,
        start_date=row.start_date,
        known_instalment=row.known_instalment,
        known_balance=row.known_balance,
        known_remaining_months=row.known_remaining_months,
        last_auto_advance_month=row.last_auto_advance_month,
    )


def asset_to_record(user_id: str, asset: Asset, position: int = 0) -> AssetRecord:
    return AssetRecord(
        user_id=user_id,
        position=position,
        external_id=asset.id,
        ticker=asset.ticker,
        quantity=asset.quantity,
        average_price=asset.average_price,
        sector=asset.sector,
        broker=asset.broker.value,
        is_international=asset.is_international,
        instrument_type=asset.instrument_type.value if asset.instrument_type else None,
        reference_index=asset.reference_index.value if asset.reference_index else None,
        contracted_rate=asset.contracted_rate,
        application_date=asset.application_date,
        maturity_date=asset.maturity_date,
        manual_current_value=asset.manual_current_value,
    )


def record_to_asset(row: AssetRecord) -> Asset:
    return Asset(
        id=row.external_id,
        ticker=row.ticker,
        quantity=row.quantity,
        average_price=row.average_price,
        sector=row.sector,
        broker=row.broker,
        is_international=bool(row.is_international),
        instrument_type=row.instrument_type,
        reference_index=row.reference_index,
        contracted_rate=row.contracted_rate,
        application_date=row.application_date,
        maturity_date=row.maturity_date,
        manual_current_value=row.manual_current_value,
    )


# ── Loans ────────────────────────────────────────────────────────────


async def load_loans(db: AsyncSession, user_id: str) -> list[LoanContract]:
    """All loan contracts of a user, in the order they were saved."""
    result = await db.execute(
        select(LoanContractRecord)
        .where(LoanContractRecord.user_id == user_id)
        .order_by(LoanContractRecord.position)
    )
    return [record_to_loan(row) for row in result.scalars().all()]


async def save_loans(db: AsyncSession, user_id: str, loans: list[LoanContract]) -> None:
    """Replace the user's loan contracts."""
    await db.execute(delete(LoanContractRecord).where(LoanContractRecord.user_id == user_id))
    for position, loan in enumerate(loans):
        db.add(loan_to_record(user_id, loan, position))
    await db.flush()
    logger.debug("Saved %d loan contracts for user %s", len(loans), user_id)


# ── Assets ───────────────────────────────────────────────────────────


async def load_assets(db: AsyncSession, user_id: str) -> list[Asset]:
    """All positions of a user, in the order they were saved."""
    result = await db.execute(
        select(AssetRecord).where(AssetRecord.user_id == user_id).order_by(AssetRecord.position)
    )
    return [record_to_asset(row) for row in result.scalars().all()]


async def save_assets(db: AsyncSession, user_id: str, assets: list[Asset]) -> None:
    """Replace the user's positions."""
    await db.execute(delete(AssetRecord).where(AssetRecord.user_id == user_id))
    for position, asset in enumerate(assets):
        db.add(asset_to_record(user_id, asset, position))
    await db.flush()
    logger.debug("Saved %d assets for user %s", len(assets), user_id)


# ── Portfolio history ────────────────────────────────────────────────


async def record_portfolio_snapshot(db: AsyncSession, user_id: str, value: Decimal, when: date) -> str:
    """Upsert the portfolio value for the month of `when`. Returns the month key."""
    key = month_key(when)
    stmt = insert(PortfolioSnapshotRecord).values(user_id=user_id, month=key, value=value)
    stmt = stmt.on_conflict_do_update(
        index_elements=[PortfolioSnapshotRecord.user_id, PortfolioSnapshotRecord.month],
        set_={"value": stmt.excluded.value},
    )
    await db.execute(stmt)
    return key


async def get_portfolio_history(db: AsyncSession, user_id: str) -> list[PortfolioMonth]:
    """Monthly snapshots of a user, oldest month first."""
    result = await db.execute(
        select(PortfolioSnapshotRecord)
        .where(PortfolioSnapshotRecord.user_id == user_id)
        .order_by(PortfolioSnapshotRecord.month)
    )
    return [PortfolioMonth(month=row.month, value=row.value) for row in result.scalars().all()]


# ── Card spending and other debts ────────────────────────────────────


async def load_debts(db: AsyncSession, user_id: str) -> DebtsState:
    """Card spending, card target and other debts of a user."""
    card = await db.execute(
        select(CardSpendingRecord).where(CardSpendingRecord.user_id == user_id).order_by(CardSpendingRecord.position)
    )
    others = await db.execute(
        select(OtherDebtRecord).where(OtherDebtRecord.user_id == user_id).order_by(OtherDebtRecord.position)
    )
    prefs = await db.execute(select(DebtPreferencesRecord).where(DebtPreferencesRecord.user_id == user_id))
    pref_row = prefs.scalars().first()

    return DebtsState(
        card_spending=[CardSpendingEntry(month=row.month, amount=row.amount) for row in card.scalars().all()],
        monthly_target=pref_row.card_monthly_target if pref_row is not None else None,
        others=[
            OtherDebt(id=row.external_id, description=row.description, amount=row.amount, due_date=row.due_date)
            for row in others.scalars().all()
        ],
    )


async def save_debts(db: AsyncSession, user_id: str, state: DebtsState) -> None:
    """Replace the user's card spending and other debts; upsert the card target."""
    await db.execute(delete(CardSpendingRecord).where(CardSpendingRecord.user_id == user_id))
    await db.execute(delete(OtherDebtRecord).where(OtherDebtRecord.user_id == user_id))
    for position, entry in enumerate(state.card_spending):
        db.add(CardSpendingRecord(user_id=user_id, position=position, month=entry.month, amount=entry.amount))
    for position, debt in enumerate(state.others):
        db.add(
            OtherDebtRecord(
                user_id=user_id,
                position=position,
                external_id=debt.id,
                description=debt.description,
                amount=debt.amount,
                due_date=debt.due_date,
            )
        )

    stmt = insert(DebtPreferencesRecord).values(user_id=user_id, card_monthly_target=state.monthly_target)
    stmt = stmt.on_conflict_do_update(
        index_elements=[DebtPreferencesRecord.user_id],
        set_={"card_monthly_target": stmt.excluded.card_monthly_target},
    )
    await db.execute(stmt)
    await db.flush()
    logger.debug(
        "Saved %d card entries and %d other debts for user %s",
        len(state.card_spending),
        len(state.others),
        user_id,
    )


# ── Monthly forecasts ────────────────────────────────────────────────


async def load_forecast(db: AsyncSession, user_id: str, month: str) -> MonthlyForecast:
    """The stored forecast of a month, or an empty one."""
    result = await db.execute(
        select(MonthlyForecastRecord).where(
            MonthlyForecastRecord.user_id == user_id,
            MonthlyForecastRecord.month == month,
        )
    )
    row = result.scalars().first()
    if row is None:
        return MonthlyForecast(month=month)
    return MonthlyForecast.model_validate(row.payload)


async def save_forecast(db: AsyncSession, user_id: str, forecast: MonthlyForecast) -> None:
    """Upsert the forecast of forecast.month."""
    payload = forecast.model_dump(mode="json")
    stmt = insert(MonthlyForecastRecord).values(user_id=user_id, month=forecast.month, payload=payload)
    stmt = stmt.on_conflict_do_update(
        index_elements=[MonthlyForecastRecord.user_id, MonthlyForecastRecord.month],
        set_={"payload": stmt.excluded.payload},
    )
    await db.execute(stmt)
    logger.debug("Saved forecast %s for user %s", forecast.month, user_id)
