import logging
import math
from collections.abc import Sequence

import numpy as np

from portfolio_analytics.config import MONTHS_PER_YEAR, TRADING_DAYS_PER_YEAR
from portfolio_analytics.errors import InsufficientDataError
from portfolio_analytics.models.common import Interval
from portfolio_analytics.models.market import PriceSeries
from portfolio_analytics.models.portfolio import ReturnSeries

logger = logging.getLogger(__name__)

PERIODS_PER_YEAR: dict[Interval, int] = {
    Interval.DAILY: TRADING_DAYS_PER_YEAR,
    Interval.MONTHLY: MONTHS_PER_YEAR,
}


def compute_returns(closes: Sequence[float]) -> np.ndarray:
    """Simple returns r_i = (p_i - p_{i-1}) / p_{i-1}."""
    prices = np.asarray(closes, dtype=float)
    if len(prices) < 2:
        raise InsufficientDataError(
            f"need at least 2 prices to compute a return, got {len(prices)}"
        )
    if np.any(prices[:-1] == 0):
        raise InsufficientDataError("zero price in series, return undefined")
    return (prices[1:] - prices[:-1]) / prices[:-1]


def sample_variance(values: Sequence[float], mean: float | None = None) -> float:
    arr = np.asarray(values, dtype=float)
    n = len(arr)
    if n < 2:
        raise InsufficientDataError(
            f"sample variance needs at least 2 observations, got {n}"
        )
    m = float(arr.mean()) if mean is None else mean
    return float(np.sum((arr - m) ** 2) / (n - 1))


def period_return(closes: Sequence[float]) -> float:
    """Total return from the first to the last close."""
    if len(closes) < 2:
        raise InsufficientDataError("need at least 2 prices for a period return")
    first, last = float(closes[0]), float(closes[-1])
    if first == 0:
        raise InsufficientDataError("starting price is zero")
    return (last - first) / first


def annualize_return(total_return: float, years: float) -> float:
    """Compound annual growth rate for a total return earned over ``years``."""
    if years <= 0:
        raise InsufficientDataError("cannot annualize over a non-positive span")
    if total_return <= -1.0:
        return -1.0
    return (1.0 + total_return) ** (1.0 / years) - 1.0


def annual_return(closes: Sequence[float], years: float, min_years: float = 1.0) -> float:
    """CAGR of ``closes`` over ``years``.

    Spans shorter than ``min_years`` report the plain period return instead of
    compounding a few weeks up to a full year.
    """
    total = period_return(closes)
    if years < min_years:
        return total
    return annualize_return(total, years)


class ReturnSeriesCalculator:
    def __init__(self, periods_per_year: int = TRADING_DAYS_PER_YEAR) -> None:
        if periods_per_year <= 0:
            raise ValueError("periods_per_year must be positive")
        self.periods_per_year = periods_per_year

    @classmethod
    def for_interval(cls, interval: Interval) -> "ReturnSeriesCalculator":
        return cls(PERIODS_PER_YEAR[interval])

    def calculate(self, prices: PriceSeries | Sequence[float], symbol: str = "") -> ReturnSeries:
        if isinstance(prices, PriceSeries):
            symbol = symbol or prices.symbol
            closes = prices.closes
        else:
            closes = prices

        returns = compute_returns(closes)
        if len(returns) < 2:
            raise InsufficientDataError(
                f"{symbol or 'series'}: one return is not enough for a sample variance"
            )

        mean = float(returns.mean())
        variance = sample_variance(returns, mean)
        std_dev = math.sqrt(variance)
        logger.debug(
            "%s: %d returns, mean=%.6f, std=%.6f",
            symbol,
            len(returns),
            mean,
            std_dev,
        )
        return ReturnSeries(
            symbol=symbol,
            periods_per_year=self.periods_per_year,
            returns=tuple(float(r) for r in returns),
            mean=mean,
            variance=variance,
            std_dev=std_dev,
            annualized_std_dev=std_dev * math.sqrt(self.periods_per_year),
        )
