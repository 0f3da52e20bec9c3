import logging
import math
from collections.abc import Sequence

import numpy as np

from portfolio_analytics.errors import InsufficientDataError
from portfolio_analytics.models.matrix import CorrelationMatrix, CovarianceMatrix
from portfolio_analytics.models.portfolio import ReturnSeries

logger = logging.getLogger(__name__)


def pairwise_covariance(a: ReturnSeries, b: ReturnSeries) -> float:
    """Raw (per-period) sample covariance over the overlapping prefix.

    Each side is centred on its own full-series mean, not the mean of the
    truncated window.
    """
    n = min(len(a), len(b))
    if n < 2:
        raise InsufficientDataError(
            f"{a.symbol}/{b.symbol}: need 2 overlapping returns, got {n}"
        )
    ra = np.asarray(a.returns[:n]) - a.mean
    rb = np.asarray(b.returns[:n]) - b.mean
    return float(np.dot(ra, rb) / (n - 1))


class CovarianceEngine:
    def __init__(self, correlation_tolerance: float = 1e-5) -> None:
        self.correlation_tolerance = correlation_tolerance

    def _validate(self, series: Sequence[ReturnSeries]) -> int:
        if len(series) < 1:
            raise InsufficientDataError("covariance needs at least one return series")
        for s in series:
            if len(s) < 2:
                raise InsufficientDataError(
                    f"{s.symbol}: need at least 2 returns, got {len(s)}"
                )
        periods = {s.periods_per_year for s in series}
        if len(periods) > 1:
            raise InsufficientDataError(
                f"return series mix periodicities: {sorted(periods)}"
            )
        return periods.pop()

    def covariance(self, series: Sequence[ReturnSeries]) -> CovarianceMatrix:
        periods_per_year = self._validate(series)

        def cell(i: int, j: int) -> float:
            if i == j:
                return series[i].annualized_variance
            return pairwise_covariance(series[i], series[j]) * periods_per_year

        matrix = CovarianceMatrix.build(
            [s.symbol for s in series],
            cell,
            periods_per_year=periods_per_year,
        )
        logger.debug("Built %dx%d covariance matrix", matrix.size, matrix.size)
        return matrix

    def correlation(
        self,
        series: Sequence[ReturnSeries],
        covariance: CovarianceMatrix | None = None,
    ) -> CorrelationMatrix:
        cov = covariance if covariance is not None else self.covariance(series)
        out_of_bounds: list[tuple[str, str, float]] = []
        undefined: list[tuple[str, str]] = []
        limit = 1.0 + self.correlation_tolerance

        def cell(i: int, j: int) -> float | None:
            if i == j:
                return 1.0
            denom = series[i].annualized_std_dev * series[j].annualized_std_dev
            if denom == 0:
                undefined.append((series[i].symbol, series[j].symbol))
                return None
            value = cov.get(i, j) / denom
            if not math.isfinite(value) or abs(value) > limit:
                out_of_bounds.append((series[i].symbol, series[j].symbol, value))
            return value

        matrix = CorrelationMatrix.build(
            [s.symbol for s in series],
            cell,
            out_of_bounds=out_of_bounds,
            undefined=undefined,
        )
        for a, b, value in out_of_bounds:
            logger.warning(
                "Correlation %s/%s = %.6f outside [-1, 1]; sample windows may be misaligned",
                a,
                b,
                value,
            )
        for a, b in undefined:
            logger.warning("Correlation %s/%s undefined: zero volatility", a, b)
        return matrix

    def build(
        self, series: Sequence[ReturnSeries]
    ) -> tuple[CovarianceMatrix, CorrelationMatrix]:
        cov = self.covariance(series)
        return cov, self.correlation(series, cov)
