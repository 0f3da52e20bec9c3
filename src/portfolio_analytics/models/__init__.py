from portfolio_analytics.models.common import DataSource, Interval
from portfolio_analytics.models.market import MarketContext, PriceSeries, VendorStats
from portfolio_analytics.models.matrix import (
    CorrelationMatrix,
    CovarianceMatrix,
    SymmetricMatrix,
)
from portfolio_analytics.models.portfolio import (
    AssetInput,
    AssetVolatility,
    BatchFetchResult,
    BenchmarkFundPerformance,
    ExcludedHolding,
    FetchFailure,
    Holding,
    HoldingBreakdown,
    PortfolioStats,
    ReturnSeries,
    RiskMetricsBundle,
    VolatilityReport,
)

__all__ = [
    "AssetInput",
    "AssetVolatility",
    "BatchFetchResult",
    "BenchmarkFundPerformance",
    "CorrelationMatrix",
    "CovarianceMatrix",
    "DataSource",
    "ExcludedHolding",
    "FetchFailure",
    "Holding",
    "HoldingBreakdown",
    "Interval",
    "MarketContext",
    "PortfolioStats",
    "PriceSeries",
    "ReturnSeries",
    "RiskMetricsBundle",
    "SymmetricMatrix",
    "VendorStats",
    "VolatilityReport",
]
