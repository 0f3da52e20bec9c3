import math
from datetime import date, timedelta

import numpy as np
import pytest

from portfolio_analytics.analysis.returns import (
    ReturnSeriesCalculator,
    annual_return,
    annualize_return,
    compute_returns,
    period_return,
    sample_variance,
)
from portfolio_analytics.errors import InsufficientDataError
from portfolio_analytics.models.common import Interval
from portfolio_analytics.models.market import PriceSeries


def make_prices(closes, symbol="TEST", interval=Interval.DAILY):
    start = date(2025, 1, 2)
    return PriceSeries(
        symbol=symbol,
        interval=interval,
        dates=tuple(start + timedelta(days=i) for i in range(len(closes))),
        closes=tuple(closes),
    )


class TestComputeReturns:
    def test_simple_returns(self):
        r = compute_returns([100.0, 110.0, 99.0])
        assert r[0] == pytest.approx(0.10)
        assert r[1] == pytest.approx(-0.10)

    def test_length_is_one_less(self):
        assert len(compute_returns([1.0, 2.0, 3.0, 4.0, 5.0])) == 4

    def test_single_price_rejected(self):
        with pytest.raises(InsufficientDataError):
            compute_returns([100.0])

    def test_zero_price_rejected(self):
        with pytest.raises(InsufficientDataError):
            compute_returns([100.0, 0.0, 50.0])


class TestReturnSeriesCalculator:
    def test_flat_growth_scenario(self):
        calc = ReturnSeriesCalculator(252)
        rs = calc.calculate(make_prices([100.0, 110.0, 121.0]))
        assert rs.returns == pytest.approx((0.10, 0.10))
        assert rs.mean == pytest.approx(0.10)
        assert rs.variance == pytest.approx(0.0, abs=1e-18)
        assert rs.annualized_std_dev == pytest.approx(0.0, abs=1e-8)

    def test_self_consistency(self):
        rng = np.random.default_rng(7)
        closes = list(100 * np.cumprod(1 + rng.normal(0.0005, 0.01, 300)))
        rs = ReturnSeriesCalculator(252).calculate(make_prices(closes))

        assert len(rs) == len(closes) - 1
        returns = list(rs.returns)
        mean = sum(returns) / len(returns)
        var = sum((r - mean) ** 2 for r in returns) / (len(returns) - 1)
        assert rs.mean == pytest.approx(mean)
        assert rs.variance == pytest.approx(var)
        assert rs.std_dev == pytest.approx(math.sqrt(var))
        assert rs.annualized_std_dev == pytest.approx(math.sqrt(var) * math.sqrt(252))

    def test_uses_sample_variance(self):
        rs = ReturnSeriesCalculator(252).calculate([100.0, 110.0, 99.0, 108.9])
        r = np.array(rs.returns)
        assert rs.variance == pytest.approx(float(r.var(ddof=1)))
        assert rs.variance != pytest.approx(float(r.var(ddof=0)))

    def test_monthly_annualization(self):
        calc = ReturnSeriesCalculator.for_interval(Interval.MONTHLY)
        rs = calc.calculate([100.0, 102.0, 101.0, 105.0])
        assert rs.periods_per_year == 12
        assert rs.annualized_std_dev == pytest.approx(rs.std_dev * math.sqrt(12))
        assert rs.annualized_variance == pytest.approx(rs.variance * 12)

    def test_one_price_fails(self):
        with pytest.raises(InsufficientDataError):
            ReturnSeriesCalculator().calculate([100.0])

    def test_two_prices_fail_variance(self):
        with pytest.raises(InsufficientDataError):
            ReturnSeriesCalculator().calculate([100.0, 101.0])

    def test_deterministic(self):
        prices = make_prices([100.0, 103.0, 101.0, 104.0, 108.0])
        calc = ReturnSeriesCalculator()
        assert calc.calculate(prices) == calc.calculate(prices)

    def test_symbol_carried_from_series(self):
        rs = ReturnSeriesCalculator().calculate(make_prices([1.0, 2.0, 3.0], "aapl"))
        assert rs.symbol == "aapl"

    def test_invalid_periods(self):
        with pytest.raises(ValueError):
            ReturnSeriesCalculator(0)


class TestSampleVariance:
    def test_known_value(self):
        assert sample_variance([1.0, 2.0, 3.0, 4.0]) == pytest.approx(5 / 3)

    def test_needs_two(self):
        with pytest.raises(InsufficientDataError):
            sample_variance([1.0])


class TestPeriodReturn:
    def test_total_return(self):
        assert period_return([50.0, 40.0, 60.0]) == pytest.approx(0.2)

    def test_needs_two(self):
        with pytest.raises(InsufficientDataError):
            period_return([50.0])


class TestAnnualizeReturn:
    def test_one_year_unchanged(self):
        assert annualize_return(0.12, 1.0) == pytest.approx(0.12)

    def test_two_years(self):
        assert annualize_return(0.21, 2.0) == pytest.approx(0.10)

    def test_total_loss(self):
        assert annualize_return(-1.0, 3.0) == -1.0

    def test_zero_span(self):
        with pytest.raises(InsufficientDataError):
            annualize_return(0.1, 0.0)


class TestAnnualReturn:
    def test_multi_year_span_compounded(self):
        assert annual_return([100.0, 121.0], 2.0) == pytest.approx(0.10)

    def test_short_span_left_as_period_return(self):
        closes = [100.0 * 1.01**i for i in range(11)]
        assert annual_return(closes, 10 / 365.25) == pytest.approx(1.01**10 - 1)

    def test_threshold(self):
        assert annual_return([100.0, 121.0], 2.0, min_years=3.0) == pytest.approx(0.21)
