import asyncio
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any

from portfolio_analytics.analysis.covariance import CovarianceEngine
from portfolio_analytics.analysis.portfolio import (
    PortfolioAggregator,
    consolidate_holdings,
    renormalize,
    resolve_weights,
)
from portfolio_analytics.analysis.returns import (
    ReturnSeriesCalculator,
    annual_return,
    period_return,
)
from portfolio_analytics.analysis.risk_metrics import RiskMetricsCalculator
from portfolio_analytics.analysis.risk_tiers import (
    estimate_beta,
    has_vendor_beta,
    has_vendor_std_dev,
    resolve_risk,
    resolve_std_dev,
)
from portfolio_analytics.config import BENCHMARK_FUNDS, AnalysisConfig
from portfolio_analytics.data.market_data import PriceDataSource, years_ago
from portfolio_analytics.errors import (
    DivisionGuardError,
    EmptyPortfolioError,
    InsufficientDataError,
    MissingHoldingDataError,
)
from portfolio_analytics.models.common import Interval
from portfolio_analytics.models.market import MarketContext, PriceSeries, VendorStats
from portfolio_analytics.models.portfolio import (
    AssetInput,
    AssetVolatility,
    BatchFetchResult,
    BenchmarkFundPerformance,
    ExcludedHolding,
    FetchFailure,
    Holding,
    HoldingBreakdown,
    ReturnSeries,
    RiskMetricsBundle,
    VolatilityReport,
)

logger = logging.getLogger(__name__)


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class _Survivors:
    """Holdings that still have usable daily data, with rescaled weights."""

    def __init__(
        self,
        symbols: list[str],
        weights: list[float],
        prices: dict[str, PriceSeries],
        returns: dict[str, ReturnSeries],
        excluded: list[ExcludedHolding],
        warnings: list[str],
    ) -> None:
        self.symbols = symbols
        self.weights = weights
        self.prices = prices
        self.returns = returns
        self.excluded = excluded
        self.warnings = warnings

    @property
    def series(self) -> list[ReturnSeries]:
        return [self.returns[s] for s in self.symbols]


class PortfolioRiskEngine:
    def __init__(
        self,
        provider: PriceDataSource,
        config: AnalysisConfig | None = None,
        executor: ThreadPoolExecutor | None = None,
        today: date | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or AnalysisConfig()
        self.today = today or date.today()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers
        )
        self._daily = ReturnSeriesCalculator(self.config.trading_days_per_year)
        self._covariance = CovarianceEngine(self.config.correlation_tolerance)
        self._aggregator = PortfolioAggregator(self.config.weight_tolerance)
        self._risk = RiskMetricsCalculator()

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Concurrent fetching
    # ------------------------------------------------------------------

    async def fetch_batch(
        self,
        fn: Callable[..., Any],
        symbols: Sequence[str],
        *args: Any,
    ) -> BatchFetchResult:
        """Run ``fn(symbol, *args)`` for every symbol concurrently.

        Waits for all calls to settle; a failure only affects its own symbol.
        """
        loop = asyncio.get_running_loop()
        results = await asyncio.gather(
            *[loop.run_in_executor(self._executor, fn, s, *args) for s in symbols],
            return_exceptions=True,
        )
        batch: BatchFetchResult = BatchFetchResult()
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                logger.warning("Fetch failed for %s: %s", symbol, result)
                batch.failed.append(FetchFailure(symbol=symbol, reason=_describe(result)))
            else:
                batch.succeeded[symbol] = result
        return batch

    def _history_window(self, years: int) -> tuple[date, date]:
        return years_ago(self.today, years), self.today

    async def _fetch_market_context(self) -> MarketContext:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor, self.provider.fetch_market_context
            )
        except Exception as e:
            defaults = self.config.defaults
            logger.warning("Market context unavailable (%s), using defaults", e)
            return MarketContext(
                market_return=defaults.default_market_return,
                risk_free_rate=defaults.default_risk_free_rate,
                market_return_is_default=True,
                risk_free_is_default=True,
                market_proxy=self.config.market_proxy,
            )

    # ------------------------------------------------------------------
    # Shared pipeline steps
    # ------------------------------------------------------------------

    def _collect_survivors(
        self,
        symbols: list[str],
        weights: list[float],
        prices: BatchFetchResult,
    ) -> _Survivors:
        excluded = [
            ExcludedHolding(symbol=f.symbol, reason=f.reason) for f in prices.failed
        ]
        returns: dict[str, ReturnSeries] = {}
        for symbol in symbols:
            series = prices.succeeded.get(symbol)
            if series is None:
                continue
            try:
                returns[symbol] = self._daily.calculate(series)
            except InsufficientDataError as e:
                logger.warning("Excluding %s: %s", symbol, e)
                excluded.append(ExcludedHolding(symbol=symbol, reason=_describe(e)))

        kept = [(s, w) for s, w in zip(symbols, weights) if s in returns]
        if not kept:
            raise EmptyPortfolioError(
                "Failed to fetch usable data for any holding: "
                + ", ".join(e.symbol for e in excluded)
            )

        warnings: list[str] = []
        kept_symbols = [s for s, _ in kept]
        kept_weights = [w for _, w in kept]
        if excluded:
            missing = [e.symbol for e in excluded]
            if not self.config.renormalize_on_exclusion:
                raise MissingHoldingDataError(missing)
            kept_weights = renormalize(kept_weights)
            msg = (
                f"Excluded {', '.join(missing)}; remaining weights rescaled to sum to 1"
            )
            logger.warning(msg)
            warnings.append(msg)

        return _Survivors(
            symbols=kept_symbols,
            weights=kept_weights,
            prices={s: prices.succeeded[s] for s in kept_symbols},
            returns=returns,
            excluded=excluded,
            warnings=warnings,
        )

    async def _estimate_betas(self, symbols: list[str]) -> dict[str, float | None]:
        """Monthly-regression betas for holdings the vendor had no beta for."""
        if not symbols:
            return {}
        start, end = self._history_window(self.config.beta_lookback_years)
        proxy = self.config.market_proxy
        batch = await self.fetch_batch(
            self.provider.fetch_price_series,
            list(dict.fromkeys([*symbols, proxy])),
            start,
            end,
            Interval.MONTHLY,
        )
        market = batch.succeeded.get(proxy)
        betas: dict[str, float | None] = {}
        for symbol in symbols:
            monthly = batch.succeeded.get(symbol)
            if market is None or monthly is None:
                betas[symbol] = None
                continue
            try:
                betas[symbol] = estimate_beta(
                    monthly, market, self.config.min_beta_months
                )
            except (InsufficientDataError, DivisionGuardError) as e:
                logger.warning("Beta estimate failed for %s: %s", symbol, e)
                betas[symbol] = None
        return betas

    async def _std_dev_series(
        self,
        symbols: list[str],
        window: dict[str, ReturnSeries],
    ) -> dict[str, ReturnSeries]:
        """Daily returns over the std-dev lookback for holdings with no vendor figure.

        A holding whose longer history cannot be fetched keeps its
        analysis-window series.
        """
        if not symbols:
            return {}
        years = self.config.std_dev_lookback_years
        if years <= self.config.history_years:
            return {s: window[s] for s in symbols}

        start, end = self._history_window(years)
        batch = await self.fetch_batch(
            self.provider.fetch_price_series, symbols, start, end, Interval.DAILY
        )
        series: dict[str, ReturnSeries] = {}
        for symbol in symbols:
            prices = batch.succeeded.get(symbol)
            if prices is not None:
                try:
                    series[symbol] = self._daily.calculate(prices)
                    continue
                except InsufficientDataError as e:
                    logger.warning("%s: %s", symbol, e)
            logger.warning(
                "No %d-year daily history for %s, std-dev uses the analysis window",
                years,
                symbol,
            )
            series[symbol] = window[symbol]
        return series

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def analyze(self, holdings: Sequence[Holding]) -> RiskMetricsBundle:
        holdings = consolidate_holdings(holdings)
        weights = resolve_weights(holdings, self.config.weight_tolerance)
        symbols = [h.symbol for h in holdings]
        values = {h.symbol: h.total_value for h in holdings}
        start, end = self._history_window(self.config.history_years)

        logger.info("Analyzing %d holdings", len(symbols))
        context, prices, vendor = await asyncio.gather(
            self._fetch_market_context(),
            self.fetch_batch(
                self.provider.fetch_price_series, symbols, start, end, Interval.DAILY
            ),
            self.fetch_batch(self.provider.fetch_vendor_risk_stats, symbols),
        )

        survivors = self._collect_survivors(symbols, weights, prices)
        warnings = list(survivors.warnings)
        if context.market_return_is_default:
            warnings.append("Market return is a default, not a live figure")
        if context.risk_free_is_default:
            warnings.append("Risk-free rate is a default, not a live figure")
        for failure in vendor.failed:
            if failure.symbol in survivors.symbols:
                warnings.append(f"Vendor statistics failed for {failure.symbol}")

        vendor_stats: dict[str, VendorStats | None] = {
            s: vendor.succeeded.get(s) for s in survivors.symbols
        }
        betas, std_series = await asyncio.gather(
            self._estimate_betas(
                [s for s in survivors.symbols if not has_vendor_beta(vendor_stats[s])]
            ),
            self._std_dev_series(
                [s for s in survivors.symbols if not has_vendor_std_dev(vendor_stats[s])],
                survivors.returns,
            ),
        )
        short_history = self.config.history_years * self.config.short_history_ratio

        assets: list[AssetInput] = []
        breakdown: list[HoldingBreakdown] = []
        for symbol, weight in zip(survivors.symbols, survivors.weights):
            resolved = resolve_risk(
                vendor_stats[symbol],
                betas.get(symbol),
                self.config.defaults.default_beta,
            )
            closes = survivors.prices[symbol]
            total = period_return(closes.closes)
            annual = annual_return(
                closes.closes, closes.years_covered, self.config.min_annualize_years
            )
            if closes.years_covered < short_history:
                msg = (
                    f"Short history for {symbol} ({closes.years_covered:.2f} of "
                    f"{self.config.history_years} years)"
                )
                logger.warning(msg)
                warnings.append(msg)
            daily = survivors.returns[symbol]
            assets.append(
                AssetInput(
                    symbol=symbol,
                    weight=weight,
                    expected_return=annual,
                    beta=resolved.beta,
                )
            )
            breakdown.append(
                HoldingBreakdown(
                    symbol=symbol,
                    weight=weight,
                    total_value=values.get(symbol),
                    period_return=total,
                    annualized_return=annual,
                    beta=resolved.beta,
                    std_dev=resolve_std_dev(resolved, std_series.get(symbol, daily)),
                    data_source=resolved.data_source,
                    alpha=resolved.alpha,
                    sharpe_ratio=resolved.sharpe_ratio,
                    treynor_ratio=resolved.treynor_ratio,
                    r_squared=resolved.r_squared,
                    vendor_period=resolved.vendor_period,
                    observations=len(daily),
                )
            )
            logger.info(
                "%s: weight=%.2f%% return=%.2f%% beta=%.2f [%s]",
                symbol,
                weight * 100,
                annual * 100,
                resolved.beta,
                resolved.data_source.value,
            )

        covariance, correlation = self._covariance.build(survivors.series)
        if correlation.out_of_bounds:
            warnings.append(
                "Correlation outside [-1, 1] for "
                + ", ".join(f"{a}/{b}" for a, b, _ in correlation.out_of_bounds)
            )
        stats = self._aggregator.aggregate(assets, covariance)
        metrics = self._risk.calculate(
            stats.expected_return,
            context.risk_free_rate,
            context.market_return,
            stats.beta,
            stats.std_dev,
        )
        warnings.extend(metrics.warnings)

        total_value = sum(v for v in values.values() if v is not None) or None
        return RiskMetricsBundle(
            sharpe_ratio=metrics.sharpe_ratio,
            treynor_ratio=metrics.treynor_ratio,
            jensens_alpha=metrics.jensens_alpha,
            market_return=context.market_return,
            risk_free_rate=context.risk_free_rate,
            portfolio=stats,
            holdings=breakdown,
            excluded=survivors.excluded,
            market_context=context,
            covariance=covariance,
            correlation=correlation,
            warnings=warnings,
            total_value=total_value,
        )

    async def volatility(self, holdings: Sequence[Holding]) -> VolatilityReport:
        holdings = consolidate_holdings(holdings)
        weights = resolve_weights(holdings, self.config.weight_tolerance)
        symbols = [h.symbol for h in holdings]
        start, end = self._history_window(self.config.history_years)

        prices = await self.fetch_batch(
            self.provider.fetch_price_series, symbols, start, end, Interval.DAILY
        )
        survivors = self._collect_survivors(symbols, weights, prices)
        covariance, correlation = self._covariance.build(survivors.series)
        variance = self._aggregator.portfolio_variance(survivors.weights, covariance)

        warnings = list(survivors.warnings)
        if correlation.out_of_bounds:
            warnings.append(
                "Correlation outside [-1, 1] for "
                + ", ".join(f"{a}/{b}" for a, b, _ in correlation.out_of_bounds)
            )

        return VolatilityReport(
            portfolio_variance=variance,
            portfolio_std_dev=variance**0.5,
            assets=[
                AssetVolatility(
                    symbol=s.symbol,
                    weight=w,
                    mean_return=s.mean,
                    std_dev=s.std_dev,
                    annualized_std_dev=s.annualized_std_dev,
                    observations=len(s),
                )
                for s, w in zip(survivors.series, survivors.weights)
            ],
            covariance=covariance,
            correlation=correlation,
            excluded=survivors.excluded,
            warnings=warnings,
        )

    async def market_context(self) -> MarketContext:
        return await self._fetch_market_context()

    async def benchmark_performance(self) -> list[BenchmarkFundPerformance]:
        catalogue = [
            (profile, fund)
            for profile, funds in BENCHMARK_FUNDS.items()
            for fund in funds
        ]
        symbols = [fund["symbol"] for _, fund in catalogue]
        start, end = self._history_window(1)
        prices = await self.fetch_batch(
            self.provider.fetch_price_series, symbols, start, end, Interval.DAILY
        )

        results: list[BenchmarkFundPerformance] = []
        for profile, fund in catalogue:
            symbol = fund["symbol"]
            entry = BenchmarkFundPerformance(
                risk_profile=profile,
                symbol=symbol,
                name=fund["name"],
                allocation=fund["allocation"],
            )
            series = prices.succeeded.get(symbol)
            if series is None:
                entry.error = prices.reason_for(symbol)
            else:
                try:
                    entry.year_return = period_return(series.closes)
                    entry.price = series.closes[-1]
                except InsufficientDataError as e:
                    entry.error = _describe(e)
            results.append(entry)
        return results
