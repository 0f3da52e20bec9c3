from datetime import date

import pandas as pd
import pytest
from pydantic import ValidationError

from portfolio_analytics.models.common import DataSource, Interval
from portfolio_analytics.models.market import MarketContext, PriceSeries, VendorStats
from portfolio_analytics.models.matrix import CovarianceMatrix, SymmetricMatrix
from portfolio_analytics.models.portfolio import (
    BatchFetchResult,
    FetchFailure,
    Holding,
    HoldingBreakdown,
    PortfolioStats,
    RiskMetricsBundle,
)


def breakdown(symbol: str, source: DataSource) -> HoldingBreakdown:
    return HoldingBreakdown(
        symbol=symbol,
        weight=0.5,
        period_return=0.1,
        annualized_return=0.1,
        beta=1.0,
        std_dev=0.2,
        data_source=source,
    )


class TestHolding:
    def test_symbol_normalized(self):
        assert Holding(symbol=" aapl ", weight=0.5).symbol == "AAPL"

    def test_needs_one_sizing(self):
        with pytest.raises(ValidationError):
            Holding(symbol="AAPL")
        with pytest.raises(ValidationError):
            Holding(symbol="AAPL", weight=0.5, total_value=100)

    def test_weight_bounds(self):
        with pytest.raises(ValidationError):
            Holding(symbol="AAPL", weight=1.5)

    def test_empty_symbol(self):
        with pytest.raises(ValidationError):
            Holding(symbol="  ", weight=0.5)


class TestPriceSeries:
    def test_from_history(self):
        idx = pd.bdate_range("2025-01-06", periods=3)
        df = pd.DataFrame({"Close": [10.0, 11.0, 12.0]}, index=idx)
        series = PriceSeries.from_history("spy", df)
        assert series.symbol == "SPY"
        assert series.closes == (10.0, 11.0, 12.0)
        assert series.start_date == date(2025, 1, 6)
        assert len(series) == 3

    def test_immutable(self):
        series = PriceSeries(symbol="A", dates=(date(2025, 1, 1),), closes=(1.0,))
        with pytest.raises(ValidationError):
            series.symbol = "B"

    def test_must_be_ascending(self):
        with pytest.raises(ValidationError):
            PriceSeries(
                symbol="A",
                dates=(date(2025, 1, 2), date(2025, 1, 1)),
                closes=(1.0, 2.0),
            )

    def test_lengths_must_match(self):
        with pytest.raises(ValidationError):
            PriceSeries(symbol="A", dates=(date(2025, 1, 1),), closes=(1.0, 2.0))

    def test_years_covered(self):
        series = PriceSeries(
            symbol="A",
            interval=Interval.MONTHLY,
            dates=(date(2020, 1, 1), date(2025, 1, 1)),
            closes=(1.0, 2.0),
        )
        assert series.years_covered == pytest.approx(5.0, abs=0.01)


class TestSymmetricMatrix:
    def test_symmetric_reads(self):
        m = SymmetricMatrix(symbols=["A", "B", "C"], upper=[1, 2, 3, 4, 5, 6])
        assert m.get(0, 1) == m.get(1, 0) == 2
        assert m.get(1, 2) == m.get(2, 1) == 5
        assert m[2, 2] == 6
        assert m.lookup("C", "A") == 3

    def test_to_list(self):
        m = SymmetricMatrix(symbols=["A", "B"], upper=[1, 2, 3])
        assert m.to_list() == [[1, 2], [2, 3]]

    def test_to_frame(self):
        m = SymmetricMatrix(symbols=["A", "B"], upper=[1, 2, 3])
        df = m.to_frame()
        assert df.loc["B", "A"] == 2

    def test_wrong_size(self):
        with pytest.raises(ValidationError):
            SymmetricMatrix(symbols=["A", "B"], upper=[1, 2])

    def test_out_of_range(self):
        m = SymmetricMatrix(symbols=["A"], upper=[1])
        with pytest.raises(IndexError):
            m.get(0, 1)

    def test_build_calls_each_pair_once(self):
        calls = []

        def cell(i, j):
            calls.append((i, j))
            return float(i + j)

        m = SymmetricMatrix.build(["A", "B", "C"], cell)
        assert len(calls) == 6
        assert all(i <= j for i, j in calls)
        assert m.get(2, 0) == 2.0

    def test_covariance_std_dev(self):
        cov = CovarianceMatrix(symbols=["A", "B"], upper=[0.04, 0.0, 0.09])
        assert cov.std_dev(0) == pytest.approx(0.2)
        assert cov.std_dev(1) == pytest.approx(0.3)


class TestVendorStats:
    def test_complete(self):
        stats = VendorStats(
            symbol="VTI",
            beta=1,
            alpha=0,
            sharpe_ratio=1,
            treynor_ratio=0.1,
            std_dev=0.2,
            r_squared=0.9,
        )
        assert stats.is_complete

    def test_beta_only_incomplete(self):
        assert not VendorStats(symbol="AAPL", beta=1.2).is_complete


class TestBatchFetchResult:
    def test_failures_reported(self):
        batch: BatchFetchResult = BatchFetchResult(
            succeeded={"A": 1},
            failed=[FetchFailure(symbol="B", reason="boom")],
        )
        assert batch.failed_symbols == ["B"]
        assert batch.reason_for("B") == "boom"
        assert batch.reason_for("A") is None


class TestRiskMetricsBundle:
    def _bundle(self, sources):
        return RiskMetricsBundle(
            sharpe_ratio=1.0,
            treynor_ratio=0.1,
            jensens_alpha=0.0,
            market_return=0.1,
            risk_free_rate=0.045,
            portfolio=PortfolioStats(expected_return=0.1, variance=0.04, std_dev=0.2, beta=1.0),
            holdings=[breakdown(f"S{i}", s) for i, s in enumerate(sources)],
        )

    def test_full_vendor_fidelity(self):
        bundle = self._bundle([DataSource.VENDOR_5Y, DataSource.VENDOR_5Y])
        assert bundle.full_vendor_fidelity
        assert bundle.estimated_symbols == []

    def test_estimated_symbols(self):
        bundle = self._bundle([DataSource.VENDOR_5Y, DataSource.DEFAULT])
        assert not bundle.full_vendor_fidelity
        assert bundle.estimated_symbols == ["S1"]


class TestMarketContext:
    def test_uses_defaults(self):
        ctx = MarketContext(market_return=0.1, risk_free_rate=0.045, risk_free_is_default=True)
        assert ctx.uses_defaults

    def test_live(self):
        assert not MarketContext(market_return=0.12, risk_free_rate=0.05).uses_defaults


class TestDataSource:
    def test_values(self):
        assert DataSource.VENDOR_5Y.value == "vendor-5y"
        assert DataSource.DEFAULT.value == "default"

    def test_estimated(self):
        assert DataSource.CALCULATED.is_estimated
        assert not DataSource.VENDOR_BETA.is_estimated
