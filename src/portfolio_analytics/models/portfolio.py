from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

from portfolio_analytics.models.common import DataSource
from portfolio_analytics.models.market import MarketContext
from portfolio_analytics.models.matrix import CorrelationMatrix, CovarianceMatrix

T = TypeVar("T")


class Holding(BaseModel):
    symbol: str
    weight: float | None = Field(default=None, ge=0.0, le=1.0)
    total_value: float | None = Field(default=None, ge=0.0)

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be empty")
        return v

    @model_validator(mode="after")
    def _one_sizing(self) -> "Holding":
        if (self.weight is None) == (self.total_value is None):
            raise ValueError("holding needs exactly one of weight or total_value")
        return self


class ReturnSeries(BaseModel):
    symbol: str
    periods_per_year: int
    returns: tuple[float, ...]
    mean: float
    variance: float
    std_dev: float
    annualized_std_dev: float

    def __len__(self) -> int:
        return len(self.returns)

    @property
    def annualized_variance(self) -> float:
        return self.variance * self.periods_per_year


class FetchFailure(BaseModel):
    symbol: str
    reason: str


class BatchFetchResult(BaseModel, Generic[T]):
    succeeded: dict[str, T] = {}
    failed: list[FetchFailure] = []

    @property
    def failed_symbols(self) -> list[str]:
        return [f.symbol for f in self.failed]

    def reason_for(self, symbol: str) -> str | None:
        for f in self.failed:
            if f.symbol == symbol:
                return f.reason
        return None


class AssetInput(BaseModel):
    symbol: str
    weight: float
    expected_return: float
    beta: float


class PortfolioStats(BaseModel):
    expected_return: float
    variance: float
    std_dev: float
    beta: float


class HoldingBreakdown(BaseModel):
    symbol: str
    weight: float
    total_value: float | None = None
    period_return: float
    annualized_return: float
    beta: float
    std_dev: float
    data_source: DataSource
    alpha: float | None = None
    sharpe_ratio: float | None = None
    treynor_ratio: float | None = None
    r_squared: float | None = None
    vendor_period: str | None = None
    observations: int = 0


class ExcludedHolding(BaseModel):
    symbol: str
    reason: str


class RiskMetricsBundle(BaseModel):
    sharpe_ratio: float | None
    treynor_ratio: float | None
    jensens_alpha: float
    market_return: float
    risk_free_rate: float
    portfolio: PortfolioStats
    holdings: list[HoldingBreakdown] = []
    excluded: list[ExcludedHolding] = []
    market_context: MarketContext | None = None
    covariance: CovarianceMatrix | None = None
    correlation: CorrelationMatrix | None = None
    warnings: list[str] = []
    total_value: float | None = None
    calculated_at: datetime = Field(default_factory=datetime.now)

    @property
    def full_vendor_fidelity(self) -> bool:
        return bool(self.holdings) and all(
            h.data_source == DataSource.VENDOR_5Y for h in self.holdings
        )

    @property
    def estimated_symbols(self) -> list[str]:
        return [h.symbol for h in self.holdings if h.data_source.is_estimated]


class AssetVolatility(BaseModel):
    symbol: str
    weight: float
    mean_return: float
    std_dev: float
    annualized_std_dev: float
    observations: int


class VolatilityReport(BaseModel):
    portfolio_variance: float
    portfolio_std_dev: float
    assets: list[AssetVolatility]
    covariance: CovarianceMatrix
    correlation: CorrelationMatrix
    excluded: list[ExcludedHolding] = []
    warnings: list[str] = []


class BenchmarkFundPerformance(BaseModel):
    risk_profile: str
    symbol: str
    name: str
    allocation: str
    price: float | None = None
    year_return: float | None = None
    error: str | None = None
