import logging
from datetime import date
from typing import Protocol

from portfolio_analytics.analysis.returns import annual_return
from portfolio_analytics.config import AnalysisConfig
from portfolio_analytics.data.quote_summary import QuoteSummaryClient
from portfolio_analytics.data.yfinance_client import YFinanceClient
from portfolio_analytics.errors import (
    DataFetchError,
    DataUnavailableError,
    InsufficientDataError,
)
from portfolio_analytics.models.common import Interval
from portfolio_analytics.models.market import MarketContext, PriceSeries, VendorStats

logger = logging.getLogger(__name__)


def years_ago(end: date, years: int) -> date:
    try:
        return end.replace(year=end.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return end.replace(year=end.year - years, day=28)


class PriceDataSource(Protocol):
    def fetch_price_series(
        self,
        symbol: str,
        start: date,
        end: date,
        interval: Interval = Interval.DAILY,
    ) -> PriceSeries: ...

    def fetch_vendor_risk_stats(self, symbol: str) -> VendorStats | None: ...

    def fetch_market_context(self) -> MarketContext: ...


class MarketDataProvider:
    def __init__(
        self,
        config: AnalysisConfig,
        today: date | None = None,
    ) -> None:
        self.config = config
        self.today = today or date.today()
        self._quote_summary = QuoteSummaryClient()

    def fetch_price_series(
        self,
        symbol: str,
        start: date,
        end: date,
        interval: Interval = Interval.DAILY,
    ) -> PriceSeries:
        df = YFinanceClient(symbol).get_history(start, end, interval)
        series = PriceSeries.from_history(symbol, df, interval)
        logger.debug(
            "%s: %d %s closes %s..%s",
            series.symbol,
            len(series),
            interval.value,
            series.start_date,
            series.end_date,
        )
        return series

    def fetch_vendor_risk_stats(self, symbol: str) -> VendorStats | None:
        """Vendor risk statistics, or None when the vendor has none for ``symbol``.

        Fund 5-year statistics are preferred; otherwise a standalone beta from
        the quote profile is returned as a beta-only record.
        """
        fund_error: DataFetchError | None = None
        try:
            stats = self._quote_summary.get_risk_statistics(symbol)
        except DataFetchError as e:
            logger.warning("Fund statistics unavailable for %s: %s", symbol, e)
            fund_error = e
            stats = None

        if stats is not None and stats.is_complete:
            return stats

        standalone = YFinanceClient(symbol).get_standalone_beta()
        if standalone is not None:
            beta, period = standalone
            return VendorStats(symbol=symbol.upper(), period=period, beta=beta)

        if stats is not None:
            return stats
        if fund_error is not None:
            raise DataUnavailableError(symbol, "no vendor statistics reachable")
        return None

    def fetch_market_context(self) -> MarketContext:
        defaults = self.config.defaults
        proxy = self.config.market_proxy

        market_return = defaults.default_market_return
        market_is_default = True
        try:
            series = self.fetch_price_series(
                proxy,
                years_ago(self.today, self.config.history_years),
                self.today,
            )
            market_return = annual_return(
                series.closes,
                series.years_covered,
                self.config.min_annualize_years,
            )
            market_is_default = False
        except (DataFetchError, InsufficientDataError) as e:
            logger.warning(
                "Market return unavailable (%s), using default %.2f%%",
                e,
                defaults.default_market_return * 100,
            )

        risk_free = defaults.default_risk_free_rate
        risk_free_is_default = True
        # ^IRX quotes the 13-week T-bill yield in percent
        quoted = YFinanceClient(self.config.risk_free_symbol).get_recent_close()
        if quoted is not None:
            risk_free = quoted / 100
            risk_free_is_default = False
        else:
            logger.warning(
                "Risk-free rate unavailable, using default %.2f%%",
                defaults.default_risk_free_rate * 100,
            )

        return MarketContext(
            market_return=market_return,
            risk_free_rate=risk_free,
            market_return_is_default=market_is_default,
            risk_free_is_default=risk_free_is_default,
            market_proxy=proxy,
        )

    def close(self) -> None:
        self._quote_summary.close()
