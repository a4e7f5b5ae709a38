"""Amortized-loan calculator (price system, constant instalment).

Pure Python, Decimal arithmetic. Implements:
- Instalment (PMT), outstanding balance after k months, total interest, payoff date
- Lender snapshot anchoring (known instalment / balance / remaining months win)
- Monthly auto-advance: one instalment applied per contract per calendar month
- Contract progress (elapsed / remaining months)

Business rules:
- Monthly rate is the nominal annual rate / 12, not an effective conversion
- Missing or non-positive principal or term → not computable (None)
- Auto-advance runs from the configured day of the month onward, at most once per month
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from carteira.calculators.dates import add_months, month_key, months_between
from carteira.config import settings
from carteira.models.enums import AutoAdvanceStatus, ValueSource
from carteira.schemas.loans import AutoAdvanceDecision, LoanContract, LoanProgress, LoanSnapshot

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def _to_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, banking convention."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _positive(value: Decimal | None) -> bool:
    return value is not None and value > 0


def monthly_rate(annual_nominal_rate: Decimal | None) -> Decimal:
    """Nominal % a.a. → monthly fraction: 12% a.a. → 0.01."""
    if annual_nominal_rate is None:
        return _ZERO
    return annual_nominal_rate / 12 / 100


def annuity_instalment(principal: Decimal, rate: Decimal, periods: int) -> Decimal:
    """Constant instalment that repays principal over periods at a monthly rate.

    PMT = P·i / (1 − (1+i)^−n), or P/n when the rate is zero.
    """
    if rate > 0:
        return principal * rate / (1 - (1 + rate) ** -periods)
    return principal / periods


def balance_after(principal: Decimal, rate: Decimal, instalment: Decimal, periods: int) -> Decimal:
    """Outstanding balance after paying `periods` instalments, floored at zero."""
    if rate > 0:
        growth = (1 + rate) ** periods
        balance = principal * growth - instalment * (growth - 1) / rate
    else:
        balance = principal - instalment * periods
    return max(_ZERO, balance)


def _elapsed_months(contract: LoanContract, term: int, as_of: date, anchored: bool) -> int:
    if anchored and contract.known_remaining_months is not None:
        elapsed = term - contract.known_remaining_months
    elif contract.start_date is not None:
        elapsed = months_between(contract.start_date, as_of)
    else:
        elapsed = 0
    return min(term, max(0, elapsed))


def compute_loan(contract: LoanContract, as_of: date) -> LoanSnapshot | None:
    """Derive instalment, balance and totals for a contract at as_of.

    Args:
        contract: The loan as entered by the user, plus any lender snapshot.
        as_of: Evaluation date; elapsed months are counted from start_date.

    Returns:
        LoanSnapshot, or None when principal or term is missing/non-positive.
    """
    principal = contract.principal
    term = contract.term_months
    if not _positive(principal) or term is None or term <= 0:
        return None

    rate = monthly_rate(contract.annual_nominal_rate)

    if _positive(contract.known_instalment):
        instalment = contract.known_instalment
        instalment_source = ValueSource.KNOWN
    else:
        instalment = annuity_instalment(principal, rate, term)
        instalment_source = ValueSource.ESTIMATED

    anchored = _positive(contract.known_balance)
    elapsed = _elapsed_months(contract, term, as_of, anchored)

    if anchored:
        balance = contract.known_balance
        balance_source = ValueSource.KNOWN
    else:
        balance = balance_after(principal, rate, instalment, elapsed)
        balance_source = ValueSource.ESTIMATED

    if contract.known_remaining_months is not None:
        remaining = contract.known_remaining_months
    else:
        remaining = max(0, term - elapsed)

    principal_paid = max(_ZERO, principal - balance)
    interest_paid = max(_ZERO, instalment * elapsed - principal_paid)
    total_interest = max(_ZERO, instalment * term - principal)

    payoff = add_months(contract.start_date, term) if contract.start_date else None

    return LoanSnapshot(
        instalment=_to_money(instalment),
        instalment_source=instalment_source,
        outstanding_balance=_to_money(balance),
        balance_source=balance_source,
        total_interest=_to_money(total_interest),
        principal_paid=_to_money(principal_paid),
        interest_paid=_to_money(interest_paid),
        elapsed_months=elapsed,
        remaining_months=remaining,
        payoff_date=payoff,
    )


def loan_progress(contract: LoanContract, as_of: date) -> LoanProgress | None:
    """Elapsed/remaining months over the contract term.

    Lender-reported remaining months win over the date-based count.
    """
    term = contract.term_months
    if term is None or term <= 0:
        return None

    if contract.known_remaining_months is not None:
        remaining = min(term, max(0, contract.known_remaining_months))
        elapsed = term - remaining
    elif contract.start_date is not None:
        elapsed = months_between(contract.start_date, as_of)
        remaining = max(0, term - elapsed)
    else:
        elapsed = 0
        remaining = term

    percent = min(Decimal("100"), max(_ZERO, Decimal(elapsed) / term * 100))
    remaining_years = (Decimal(remaining) / 12).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)

    return LoanProgress(
        total_months=term,
        elapsed_months=elapsed,
        remaining_months=remaining,
        percent=_to_money(percent),
        remaining_years=remaining_years,
    )


# ---------------------------------------------------------------------------
# Monthly auto-advance
# ---------------------------------------------------------------------------


def check_auto_advance(
    contract: LoanContract,
    as_of: date,
    *,
    day_threshold: int | None = None,
) -> AutoAdvanceDecision:
    """Decide whether this month's instalment should be applied to the lender snapshot.

    Pure: never mutates the contract. The (contract id, month) pair is the
    idempotency key; once last_auto_advance_month equals the current month the
    answer is ALREADY_PROCESSED no matter how often this is called.

    Args:
        contract: Contract with known balance, remaining months and rate.
        as_of: Evaluation date.
        day_threshold: First day of the month on which processing is allowed
            (default from settings).

    Returns:
        AutoAdvanceDecision; only APPLY carries the new balance.
    """
    threshold = day_threshold if day_threshold is not None else settings.loans.auto_advance_day
    key = month_key(as_of)

    if contract.last_auto_advance_month == key:
        return AutoAdvanceDecision(contract_id=contract.id, month_key=key, status=AutoAdvanceStatus.ALREADY_PROCESSED)

    if as_of.day < threshold:
        return AutoAdvanceDecision(contract_id=contract.id, month_key=key, status=AutoAdvanceStatus.TOO_EARLY)

    balance = contract.known_balance
    remaining = contract.known_remaining_months
    if not _positive(balance) or not remaining or remaining <= 0 or not _positive(contract.annual_nominal_rate):
        return AutoAdvanceDecision(contract_id=contract.id, month_key=key, status=AutoAdvanceStatus.NOT_APPLICABLE)

    rate = monthly_rate(contract.annual_nominal_rate)
    interest = balance * rate

    if _positive(contract.known_instalment):
        instalment = contract.known_instalment
    else:
        instalment = annuity_instalment(balance, rate, remaining)

    amortization = instalment - interest
    new_balance = max(_ZERO, balance - amortization)

    return AutoAdvanceDecision(
        contract_id=contract.id,
        month_key=key,
        status=AutoAdvanceStatus.APPLY,
        interest=_to_money(interest),
        instalment=_to_money(instalment),
        amortization=_to_money(amortization),
        previous_balance=balance,
        new_balance=_to_money(new_balance),
        new_remaining_months=max(0, remaining - 1),
    )


def apply_auto_advance(
    contract: LoanContract,
    as_of: date,
    *,
    day_threshold: int | None = None,
) -> tuple[LoanContract, AutoAdvanceDecision]:
    """Apply this month's instalment if due.

    Returns the (possibly updated) contract and the decision. The input
    contract is never modified; a copy is returned when the decision is APPLY.
    """
    decision = check_auto_advance(contract, as_of, day_threshold=day_threshold)
    if not decision.applied:
        return contract, decision

    updated = contract.model_copy(
        update={
            "known_balance": decision.new_balance,
            "known_remaining_months": decision.new_remaining_months,
            "last_auto_advance_month": decision.month_key,
        }
    )
    logger.debug(
        "Auto-advance %s: balance %s -> %s, remaining %s",
        decision.idempotency_key,
        decision.previous_balance,
        decision.new_balance,
        decision.new_remaining_months,
    )
    return updated, decision
