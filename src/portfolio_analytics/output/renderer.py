from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from portfolio_analytics.analysis.feedback import alpha_feedback, sharpe_feedback
from portfolio_analytics.models.market import MarketContext
from portfolio_analytics.models.matrix import SymmetricMatrix
from portfolio_analytics.models.portfolio import (
    BenchmarkFundPerformance,
    ExcludedHolding,
    RiskMetricsBundle,
    VolatilityReport,
)
from portfolio_analytics.output.formatters import (
    data_source_color,
    fmt_large_number,
    fmt_number,
    fmt_price,
    fmt_rate,
    fmt_ratio,
    weight_bar,
)


class ReportRenderer:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render(self, bundle: RiskMetricsBundle) -> None:
        self._render_header(bundle)
        self._render_holdings(bundle)
        self._render_excluded(bundle.excluded)
        self._render_metrics(bundle)
        self._render_warnings(bundle.warnings)

    def _render_header(self, bundle: RiskMetricsBundle) -> None:
        value = fmt_large_number(bundle.total_value) if bundle.total_value else ""
        title = f"[bold]{len(bundle.holdings)} holdings[/bold]"
        if value:
            title += f"  {value}"
        self.console.print()
        self.console.print(Panel(title, title="Portfolio Risk Analysis", style="cyan"))

    def _render_holdings(self, bundle: RiskMetricsBundle) -> None:
        table = Table(title="Holdings", show_header=True)
        table.add_column("Symbol", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("", justify="left")
        table.add_column("Return (ann.)", justify="right")
        table.add_column("Beta", justify="right")
        table.add_column("Std Dev", justify="right")
        table.add_column("Alpha", justify="right")
        table.add_column("Source")

        for h in bundle.holdings:
            table.add_row(
                h.symbol,
                fmt_rate(h.weight),
                weight_bar(h.weight),
                fmt_rate(h.annualized_return),
                fmt_number(h.beta),
                fmt_rate(h.std_dev),
                fmt_rate(h.alpha),
                Text(h.data_source.value, style=data_source_color(h.data_source)),
            )
        self.console.print(table)

    def _render_excluded(self, excluded: list[ExcludedHolding]) -> None:
        if not excluded:
            return
        table = Table(title="Excluded Holdings", show_header=True)
        table.add_column("Symbol", style="red")
        table.add_column("Reason")
        for e in excluded:
            table.add_row(e.symbol, e.reason)
        self.console.print(table)

    def _render_metrics(self, bundle: RiskMetricsBundle) -> None:
        p = bundle.portfolio
        table = Table(title="Portfolio Metrics", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        rows = [
            ("Return", fmt_rate(p.expected_return), "Beta", fmt_number(p.beta, 3)),
            ("Std Dev", fmt_rate(p.std_dev), "Variance", fmt_number(p.variance, 6)),
            (
                "Sharpe",
                fmt_ratio(bundle.sharpe_ratio),
                "Treynor",
                fmt_ratio(bundle.treynor_ratio),
            ),
            (
                "Jensen's Alpha",
                fmt_rate(bundle.jensens_alpha, 3),
                "Market Return",
                fmt_rate(bundle.market_return),
            ),
            ("Risk-Free", fmt_rate(bundle.risk_free_rate), "", ""),
        ]
        for r in rows:
            table.add_row(*r)
        self.console.print(table)

        sharpe = sharpe_feedback(bundle.sharpe_ratio)
        if sharpe:
            self.console.print(
                f"[{sharpe.color}]Sharpe: {sharpe.rating}[/{sharpe.color}]  {sharpe.message}"
            )
        alpha = alpha_feedback(bundle.jensens_alpha)
        self.console.print(
            f"[{alpha.color}]Alpha: {alpha.rating}[/{alpha.color}]  {alpha.message}"
        )

    def _render_warnings(self, warnings: list[str]) -> None:
        for w in warnings:
            self.console.print(f"[yellow]! {w}[/yellow]")

    def render_volatility(self, report: VolatilityReport) -> None:
        table = Table(title="Asset Volatility", show_header=True)
        table.add_column("Symbol", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("Mean Daily Return", justify="right")
        table.add_column("Std Dev (ann.)", justify="right")
        table.add_column("Days", justify="right")
        for a in report.assets:
            table.add_row(
                a.symbol,
                fmt_rate(a.weight),
                fmt_rate(a.mean_return, 4),
                fmt_rate(a.annualized_std_dev),
                str(a.observations),
            )
        self.console.print(table)
        self.render_matrix("Covariance (annualized)", report.covariance, 6)
        self.render_matrix("Correlation", report.correlation, 3)
        self._render_excluded(report.excluded)
        self.console.print(
            Panel(
                f"Variance {fmt_number(report.portfolio_variance, 6)}  "
                f"Std Dev {fmt_rate(report.portfolio_std_dev)}",
                title="Portfolio",
                style="cyan",
            )
        )
        self._render_warnings(report.warnings)

    def render_matrix(self, title: str, matrix: SymmetricMatrix, decimals: int) -> None:
        table = Table(title=title, show_header=True)
        table.add_column("", style="cyan")
        for s in matrix.symbols:
            table.add_column(s, justify="right")
        for i, s in enumerate(matrix.symbols):
            table.add_row(
                s,
                *[fmt_number(matrix.get(i, j), decimals) for j in range(matrix.size)],
            )
        self.console.print(table)

    def render_market(self, context: MarketContext) -> None:
        def tag(is_default: bool) -> str:
            return " [yellow](default)[/yellow]" if is_default else ""

        self.console.print(
            Panel(
                f"{context.market_proxy} return: {fmt_rate(context.market_return)}"
                f"{tag(context.market_return_is_default)}\n"
                f"Risk-free rate: {fmt_rate(context.risk_free_rate)}"
                f"{tag(context.risk_free_is_default)}",
                title="Market Context",
                style="cyan",
            )
        )

    def render_benchmarks(self, funds: list[BenchmarkFundPerformance]) -> None:
        table = Table(title="Benchmark Funds", show_header=True)
        table.add_column("Profile", style="cyan")
        table.add_column("Symbol")
        table.add_column("Name")
        table.add_column("Allocation")
        table.add_column("Price", justify="right")
        table.add_column("1Y Return", justify="right")
        for f in funds:
            ret = fmt_rate(f.year_return) if f.error is None else Text(
                "unavailable", style="red"
            )
            table.add_row(
                f.risk_profile,
                f.symbol,
                f.name,
                f.allocation,
                fmt_price(f.price),
                ret,
            )
        self.console.print(table)
