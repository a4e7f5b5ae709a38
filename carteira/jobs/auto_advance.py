"""Monthly auto-advance job: applies this month's instalment to each stored loan.

Safe to run from a scheduler, an HTTP handler or a test: a contract is
advanced at most once per calendar month because the decision is keyed on
(contract id, month) and the month is stamped on the stored contract.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carteira.calculators.dates import month_key
from carteira.calculators.loan import apply_auto_advance
from carteira.db.engine import session_scope
from carteira.db.repository import load_loans, save_loans
from carteira.formatters import format_currency
from carteira.schemas.loans import AutoAdvanceDecision

logger = logging.getLogger(__name__)


async def run_auto_advance(
    db: AsyncSession,
    user_id: str,
    as_of: date,
    *,
    day_threshold: int | None = None,
) -> list[AutoAdvanceDecision]:
    """Advance every due loan of a user and persist the new lender snapshots.

    Returns:
        One decision per stored contract, in storage order. Nothing is written
        when no contract was advanced.
    """
    loans = await load_loans(db, user_id)
    updated = []
    decisions: list[AutoAdvanceDecision] = []

    for loan in loans:
        new_loan, decision = apply_auto_advance(loan, as_of, day_threshold=day_threshold)
        updated.append(new_loan)
        decisions.append(decision)
        if decision.applied:
            logger.info(
                "Loan %s advanced for %s: balance %s, interest %s, instalment %s, amortization %s, "
                "new balance %s, remaining %s",
                decision.contract_id,
                decision.month_key,
                format_currency(decision.previous_balance),
                format_currency(decision.interest),
                format_currency(decision.instalment),
                format_currency(decision.amortization),
                format_currency(decision.new_balance),
                decision.new_remaining_months,
            )

    if any(d.applied for d in decisions):
        await save_loans(db, user_id, updated)
    else:
        logger.debug("No loan due for auto-advance (user=%s, month=%s)", user_id, month_key(as_of))

    return decisions


async def run_scheduled_auto_advance(
    user_ids: Iterable[str],
    as_of: date | None = None,
) -> dict[str, list[AutoAdvanceDecision]]:
    """Scheduler entry point: one session per user, committed independently.

    A storage failure for one user is logged and skipped; the other users
    are still processed.
    """
    when = as_of or date.today()
    results: dict[str, list[AutoAdvanceDecision]] = {}
    for user_id in user_ids:
        try:
            async with session_scope() as db:
                results[user_id] = await run_auto_advance(db, user_id, when)
        except SQLAlchemyError:
            logger.exception("Auto-advance failed for user %s", user_id)
    applied = sum(d.applied for decisions in results.values() for d in decisions)
    logger.info("Scheduled auto-advance %s: %d users, %d instalments applied", month_key(when), len(results), applied)
    return results
