import logging
import math
from collections.abc import Sequence
from datetime import date

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25


class CashFlow(BaseModel):
    date: date
    amount: float


def future_value(present_value: float, rate: float, years: float) -> float:
    return present_value * (1 + rate) ** years


def time_weighted_return(period_returns: Sequence[float]) -> float:
    if not period_returns:
        return 0.0
    growth = 1.0
    for r in period_returns:
        growth *= 1 + r
    return growth - 1


def dollar_weighted_return(
    cash_flows: Sequence[CashFlow],
    initial_guess: float = 0.1,
    max_iterations: int = 100,
    tolerance: float = 1e-4,
) -> float:
    """Internal rate of return of dated cash flows via Newton-Raphson.

    Contributions are negative amounts, withdrawals and the ending value
    positive. Time is measured in years from the earliest flow.
    """
    if not cash_flows:
        return 0.0

    flows = sorted(cash_flows, key=lambda cf: cf.date)
    start = flows[0].date
    timed = [(cf.amount, (cf.date - start).days / DAYS_PER_YEAR) for cf in flows]

    rate = initial_guess
    for _ in range(max_iterations):
        if rate <= -1.0:
            logger.warning("IRR iteration left the domain (rate=%.6f)", rate)
            break
        npv = 0.0
        dnpv = 0.0
        for amount, years in timed:
            factor = (1 + rate) ** years
            npv += amount / factor
            dnpv -= years * amount / (factor * (1 + rate))

        if abs(npv) < tolerance:
            break
        if dnpv == 0 or not math.isfinite(dnpv):
            logger.warning("IRR derivative vanished at rate %.6f, stopping", rate)
            break
        rate = rate - npv / dnpv

    return rate
