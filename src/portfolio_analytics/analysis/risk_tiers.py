"""Per-holding resolution of beta and risk statistics.

Each tier is a pure function that either produces a tagged ``ResolvedRisk``
or returns ``None`` to hand over to the next tier:

    vendor-5y -> vendor-beta -> calculated -> default

``default`` always succeeds, so ``resolve_risk`` is total.
"""

import logging
import math

import pandas as pd
from pydantic import BaseModel

from portfolio_analytics.errors import DivisionGuardError, InsufficientDataError
from portfolio_analytics.models.common import DataSource
from portfolio_analytics.models.market import PriceSeries, VendorStats
from portfolio_analytics.models.portfolio import ReturnSeries

logger = logging.getLogger(__name__)

FIVE_YEAR = "5y"


class ResolvedRisk(BaseModel):
    data_source: DataSource
    beta: float
    std_dev: float | None = None
    alpha: float | None = None
    sharpe_ratio: float | None = None
    treynor_ratio: float | None = None
    r_squared: float | None = None
    vendor_period: str | None = None


def from_vendor_five_year(stats: VendorStats | None) -> ResolvedRisk | None:
    if stats is None or stats.period != FIVE_YEAR or not stats.is_complete:
        return None
    return ResolvedRisk(
        data_source=DataSource.VENDOR_5Y,
        beta=stats.beta,
        std_dev=stats.std_dev,
        alpha=stats.alpha,
        sharpe_ratio=stats.sharpe_ratio,
        treynor_ratio=stats.treynor_ratio,
        r_squared=stats.r_squared,
        vendor_period=stats.period,
    )


def from_vendor_beta(stats: VendorStats | None) -> ResolvedRisk | None:
    if stats is None or stats.beta is None or not math.isfinite(stats.beta):
        return None
    return ResolvedRisk(
        data_source=DataSource.VENDOR_BETA,
        beta=stats.beta,
        vendor_period=stats.period,
    )


def from_calculated(beta: float | None) -> ResolvedRisk | None:
    if beta is None or not math.isfinite(beta):
        return None
    return ResolvedRisk(data_source=DataSource.CALCULATED, beta=beta)


def from_default(default_beta: float = 1.0) -> ResolvedRisk:
    return ResolvedRisk(data_source=DataSource.DEFAULT, beta=default_beta)


def has_vendor_beta(stats: VendorStats | None) -> bool:
    """True when one of the vendor tiers will resolve, so no estimate is needed."""
    return from_vendor_five_year(stats) is not None or from_vendor_beta(stats) is not None


def has_vendor_std_dev(stats: VendorStats | None) -> bool:
    return from_vendor_five_year(stats) is not None


def resolve_risk(
    stats: VendorStats | None,
    calculated_beta: float | None = None,
    default_beta: float = 1.0,
) -> ResolvedRisk:
    for tier in (
        lambda: from_vendor_five_year(stats),
        lambda: from_vendor_beta(stats),
        lambda: from_calculated(calculated_beta),
    ):
        resolved = tier()
        if resolved is not None:
            return resolved
    return from_default(default_beta)


def resolve_std_dev(resolved: ResolvedRisk, daily: ReturnSeries) -> float:
    if resolved.std_dev is not None:
        return resolved.std_dev
    return daily.annualized_std_dev


def estimate_beta(
    asset: PriceSeries,
    market: PriceSeries,
    min_observations: int = 12,
) -> float:
    """Beta as Cov(asset, market) / Var(market) on overlapping periodic returns.

    Both series are aligned on their dates first; statistics use n-1.
    """
    asset_ret = asset.to_series().pct_change()
    market_ret = market.to_series().pct_change()
    aligned = pd.concat(
        [asset_ret.rename("asset"), market_ret.rename("market")],
        axis=1,
        join="inner",
    ).dropna()

    n = len(aligned)
    if n < max(min_observations, 2):
        raise InsufficientDataError(
            f"{asset.symbol}: {n} overlapping periods, need {min_observations}"
        )

    market_var = float(aligned["market"].var(ddof=1))
    if market_var == 0 or not math.isfinite(market_var):
        raise DivisionGuardError(f"{market.symbol}: market variance is zero")
    cov = float(aligned["asset"].cov(aligned["market"], ddof=1))
    beta = cov / market_var
    logger.debug("%s: estimated beta %.3f over %d periods", asset.symbol, beta, n)
    return beta
