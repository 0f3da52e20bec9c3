from rich.console import Console

from portfolio_analytics.models.common import DataSource
from portfolio_analytics.models.market import MarketContext
from portfolio_analytics.models.matrix import CorrelationMatrix, CovarianceMatrix
from portfolio_analytics.models.portfolio import (
    AssetVolatility,
    BenchmarkFundPerformance,
    ExcludedHolding,
    HoldingBreakdown,
    PortfolioStats,
    RiskMetricsBundle,
    VolatilityReport,
)
from portfolio_analytics.output.renderer import ReportRenderer


def make_renderer() -> tuple[ReportRenderer, Console]:
    console = Console(record=True, width=160)
    return ReportRenderer(console), console


def make_bundle(**overrides) -> RiskMetricsBundle:
    values = dict(
        sharpe_ratio=1.2,
        treynor_ratio=0.08,
        jensens_alpha=0.012,
        market_return=0.10,
        risk_free_rate=0.045,
        portfolio=PortfolioStats(
            expected_return=0.14, variance=0.0225, std_dev=0.15, beta=1.1
        ),
        holdings=[
            HoldingBreakdown(
                symbol="VTI",
                weight=0.6,
                period_return=0.12,
                annualized_return=0.12,
                beta=1.0,
                std_dev=0.17,
                data_source=DataSource.VENDOR_5Y,
                alpha=0.001,
            ),
            HoldingBreakdown(
                symbol="NVDA",
                weight=0.4,
                period_return=0.2,
                annualized_return=0.2,
                beta=1.0,
                std_dev=0.45,
                data_source=DataSource.DEFAULT,
            ),
        ],
        excluded=[ExcludedHolding(symbol="XYZ", reason="SymbolNotFoundError: XYZ")],
        warnings=["Excluded XYZ; remaining weights rescaled to sum to 1"],
        total_value=25000.0,
    )
    values.update(overrides)
    return RiskMetricsBundle(**values)


class TestRender:
    def test_full_report(self):
        renderer, console = make_renderer()
        renderer.render(make_bundle())
        out = console.export_text()
        assert "Portfolio Risk Analysis" in out
        assert "VTI" in out and "NVDA" in out
        assert "vendor-5y" in out
        assert "default" in out
        assert "Excluded Holdings" in out
        assert "Sharpe: Good" in out
        assert "rescaled" in out

    def test_undefined_sharpe(self):
        renderer, console = make_renderer()
        renderer.render(make_bundle(sharpe_ratio=None))
        out = console.export_text()
        assert "undefined" in out
        assert "Sharpe: " not in out


class TestRenderVolatility:
    def test_matrices(self):
        renderer, console = make_renderer()
        report = VolatilityReport(
            portfolio_variance=0.04,
            portfolio_std_dev=0.2,
            assets=[
                AssetVolatility(
                    symbol="A",
                    weight=0.5,
                    mean_return=0.0004,
                    std_dev=0.01,
                    annualized_std_dev=0.16,
                    observations=251,
                ),
                AssetVolatility(
                    symbol="B",
                    weight=0.5,
                    mean_return=0.0003,
                    std_dev=0.02,
                    annualized_std_dev=0.32,
                    observations=251,
                ),
            ],
            covariance=CovarianceMatrix(symbols=["A", "B"], upper=[0.0256, 0.01, 0.1024]),
            correlation=CorrelationMatrix(symbols=["A", "B"], upper=[1.0, 0.195, 1.0]),
        )
        renderer.render_volatility(report)
        out = console.export_text()
        assert "Covariance (annualized)" in out
        assert "0.195" in out
        assert "251" in out


class TestRenderMarket:
    def test_default_tagged(self):
        renderer, console = make_renderer()
        renderer.render_market(
            MarketContext(market_return=0.1, risk_free_rate=0.045, risk_free_is_default=True)
        )
        out = console.export_text()
        assert "SPY return: +10.00%" in out
        assert "(default)" in out


class TestRenderBenchmarks:
    def test_failed_fund(self):
        renderer, console = make_renderer()
        renderer.render_benchmarks(
            [
                BenchmarkFundPerformance(
                    risk_profile="Moderate",
                    symbol="AOR",
                    name="iShares Core Growth Allocation ETF",
                    allocation="60% Equities, 40% Bonds",
                    price=60.0,
                    year_return=0.08,
                ),
                BenchmarkFundPerformance(
                    risk_profile="Moderate",
                    symbol="VSMGX",
                    name="Vanguard LifeStrategy Moderate Growth Fund",
                    allocation="60% Equities, 40% Bonds",
                    error="DataUnavailableError: timeout",
                ),
            ]
        )
        out = console.export_text()
        assert "+8.00%" in out
        assert "unavailable" in out
