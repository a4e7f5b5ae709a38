"""XIRR: annualized return for irregularly dated cash flows.

Bisection on NPV(rate) = Σ amount / (1 + rate)^(days / 365), with the upper
bound doubled until the bracket straddles a sign change. Iteration counts are
fixed, so every call finishes in bounded time.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from carteira.schemas.cashflows import CashFlow

logger = logging.getLogger(__name__)

Func = Callable[[float], float]

LOWER_BOUND = -0.9999
UPPER_BOUND = 1.0
MAX_EXPANSIONS = 20
MAX_ITERATIONS = 100
NPV_TOLERANCE = 1e-6
DAYS_PER_YEAR = 365.0


@dataclass
class RootResult:
    root: float
    iterations: int
    converged: bool


def _same_sign(a: float, b: float) -> bool:
    return (a > 0 and b > 0) or (a < 0 and b < 0)


def _npv_function(cashflows: Sequence[CashFlow]) -> Func:
    """Build NPV(rate) with times measured in years from the earliest flow."""
    ordered = sorted(cashflows, key=lambda cf: cf.date)
    origin = ordered[0].date
    terms = [((cf.date - origin).days / DAYS_PER_YEAR, float(cf.amount)) for cf in ordered]

    def npv(rate: float) -> float:
        total = 0.0
        for years, amount in terms:
            try:
                discount = (1.0 + rate) ** years
            except OverflowError:
                continue  # amount / inf contributes nothing
            if discount == 0.0:
                total += math.copysign(math.inf, amount)
            else:
                total += amount / discount
        return total

    return npv


def _expand_bracket(func: Func, lower: float, upper: float) -> tuple[float, float] | None:
    """Double the upper bound until func changes sign over [lower, upper]."""
    f_lower = func(lower)
    f_upper = func(upper)
    for expansion in range(MAX_EXPANSIONS + 1):
        if f_lower == 0.0 or f_upper == 0.0 or not _same_sign(f_lower, f_upper):
            if math.isnan(f_lower) or math.isnan(f_upper):
                return None
            return lower, upper
        if expansion == MAX_EXPANSIONS:
            break
        upper *= 2
        f_upper = func(upper)
    logger.debug("XIRR bracket not found up to %s", upper)
    return None


def _bisect(func: Func, lower: float, upper: float) -> RootResult:
    f_lower = func(lower)
    for iteration in range(1, MAX_ITERATIONS + 1):
        mid = 0.5 * (lower + upper)
        f_mid = func(mid)
        if abs(f_mid) < NPV_TOLERANCE:
            return RootResult(mid, iteration, True)
        if _same_sign(f_lower, f_mid):
            lower, f_lower = mid, f_mid
        else:
            upper = mid
    return RootResult(0.5 * (lower + upper), MAX_ITERATIONS, False)


def solve_xirr(cashflows: Sequence[CashFlow]) -> float | None:
    """Rate that zeroes the NPV of the cash flows.

    Args:
        cashflows: At least two flows, with at least one positive and one
            negative amount. Order does not matter; flows are sorted by date.

    Returns:
        The annual rate as a fraction (0.10 = 10%), or None when no sign
        change exists or no bracket could be found.
    """
    if len(cashflows) < 2:
        return None
    if not any(cf.amount > 0 for cf in cashflows) or not any(cf.amount < 0 for cf in cashflows):
        return None

    npv = _npv_function(cashflows)
    bracket = _expand_bracket(npv, LOWER_BOUND, UPPER_BOUND)
    if bracket is None:
        return None

    result = _bisect(npv, *bracket)
    logger.debug("XIRR root=%s iterations=%s converged=%s", result.root, result.iterations, result.converged)
    return result.root
