import logging
import math
from collections.abc import Sequence

import numpy as np

from portfolio_analytics.errors import EmptyPortfolioError, WeightValidationError
from portfolio_analytics.models.matrix import CovarianceMatrix
from portfolio_analytics.models.portfolio import AssetInput, Holding, PortfolioStats

logger = logging.getLogger(__name__)


def resolve_weights(holdings: Sequence[Holding], tolerance: float = 0.01) -> list[float]:
    """Portfolio weights for ``holdings``, in order.

    Explicit weights are validated, never rescaled. Dollar-value holdings are
    normalized by the portfolio total.
    """
    if not holdings:
        raise EmptyPortfolioError("portfolio has no holdings")

    by_value = [h.total_value is not None for h in holdings]
    if all(by_value):
        total = sum(h.total_value for h in holdings)
        if total <= 0:
            raise WeightValidationError("total portfolio value must be positive")
        return [h.total_value / total for h in holdings]
    if any(by_value):
        raise WeightValidationError(
            "holdings mix weights and dollar values; use one form"
        )

    weights = [h.weight for h in holdings]
    check_weights(weights, tolerance)
    return weights


def check_weights(weights: Sequence[float], tolerance: float = 0.01) -> None:
    total = float(sum(weights))
    if abs(total - 1.0) > tolerance:
        raise WeightValidationError(
            f"Weights must sum to 1.0 (currently: {total:.3f})"
        )


def renormalize(weights: Sequence[float]) -> list[float]:
    total = float(sum(weights))
    if total <= 0:
        raise EmptyPortfolioError("remaining holdings carry no weight")
    return [w / total for w in weights]


class PortfolioAggregator:
    def __init__(self, weight_tolerance: float = 0.01) -> None:
        self.weight_tolerance = weight_tolerance

    def aggregate(
        self,
        assets: Sequence[AssetInput],
        covariance: CovarianceMatrix,
    ) -> PortfolioStats:
        if not assets:
            raise EmptyPortfolioError("no holdings with usable data")
        if covariance.size != len(assets):
            raise ValueError(
                f"covariance is {covariance.size}x{covariance.size} "
                f"but {len(assets)} assets were given"
            )
        symbols = [a.symbol for a in assets]
        if symbols != covariance.symbols:
            raise ValueError("asset order does not match covariance labels")

        weights = np.array([a.weight for a in assets], dtype=float)
        check_weights(weights, self.weight_tolerance)

        expected_return = float(sum(a.weight * a.expected_return for a in assets))
        beta = float(sum(a.weight * a.beta for a in assets))
        variance = self.portfolio_variance(weights, covariance)

        logger.info(
            "Portfolio: return=%.4f beta=%.3f std=%.4f",
            expected_return,
            beta,
            math.sqrt(variance),
        )
        return PortfolioStats(
            expected_return=expected_return,
            variance=variance,
            std_dev=math.sqrt(variance),
            beta=beta,
        )

    @staticmethod
    def portfolio_variance(
        weights: Sequence[float], covariance: CovarianceMatrix
    ) -> float:
        """Full quadratic form w^T C w, cross terms included."""
        n = covariance.size
        if len(weights) != n:
            raise ValueError(f"{len(weights)} weights for a {n}x{n} matrix")
        variance = 0.0
        for i in range(n):
            for j in range(n):
                variance += weights[i] * covariance.get(i, j) * weights[j]
        # float noise on a near-riskless book can dip just below zero
        return max(variance, 0.0)


def consolidate_holdings(holdings: Sequence[Holding]) -> list[Holding]:
    """Merge repeated symbols (e.g. several lots of one position), keeping order."""
    merged: dict[str, Holding] = {}
    for h in holdings:
        prev = merged.get(h.symbol)
        if prev is None:
            merged[h.symbol] = h
            continue
        if (prev.weight is None) != (h.weight is None):
            raise WeightValidationError(
                f"{h.symbol} is given both as a weight and as a dollar value"
            )
        if h.weight is not None:
            merged[h.symbol] = Holding(symbol=h.symbol, weight=prev.weight + h.weight)
        else:
            merged[h.symbol] = Holding(
                symbol=h.symbol, total_value=prev.total_value + h.total_value
            )
    return list(merged.values())
