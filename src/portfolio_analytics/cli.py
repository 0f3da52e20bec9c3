import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from typing import TypeVar

from rich.console import Console

from portfolio_analytics.analysis.performance import (
    CashFlow,
    dollar_weighted_return,
    future_value,
)
from portfolio_analytics.config import AnalysisConfig
from portfolio_analytics.data.market_data import MarketDataProvider
from portfolio_analytics.engine import PortfolioRiskEngine
from portfolio_analytics.errors import PortfolioAnalyticsError
from portfolio_analytics.models.portfolio import Holding
from portfolio_analytics.output.formatters import fmt_price, fmt_rate
from portfolio_analytics.output.renderer import ReportRenderer

logger = logging.getLogger(__name__)
console = Console()

T = TypeVar("T")


def parse_holding(text: str, by_value: bool = False) -> Holding:
    symbol, sep, amount = text.partition("=")
    if not sep:
        raise ValueError(f"expected SYMBOL=AMOUNT, got {text!r}")
    try:
        value = float(amount.replace(",", "").lstrip("$"))
    except ValueError:
        raise ValueError(f"bad amount in {text!r}") from None
    if by_value:
        return Holding(symbol=symbol, total_value=value)
    return Holding(symbol=symbol, weight=value)


def parse_cash_flow(text: str) -> CashFlow:
    when, sep, amount = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD=AMOUNT, got {text!r}")
    try:
        return CashFlow(date=date.fromisoformat(when), amount=float(amount))
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad cash flow {text!r}") from None


def _add_holdings_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "holdings",
        nargs="+",
        help="Holdings as SYMBOL=WEIGHT (e.g. AAPL=0.6), or SYMBOL=DOLLARS with --values",
    )
    p.add_argument(
        "--values",
        action="store_true",
        help="Amounts are dollar values; weights are derived from the total",
    )
    p.add_argument(
        "--years",
        type=int,
        default=None,
        help="Years of daily history to use (default 1)",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of rescaling weights when a holding has no data",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="portfolio-analytics",
        description="Portfolio risk/return analytics",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = p.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Sharpe, Treynor, Jensen's alpha and more")
    _add_holdings_args(analyze)

    volatility = sub.add_parser(
        "volatility", help="Portfolio standard deviation from the covariance matrix"
    )
    _add_holdings_args(volatility)

    sub.add_parser("market", help="Current market return and risk-free rate")
    sub.add_parser("benchmarks", help="Benchmark fund one-year returns")

    project = sub.add_parser("project", help="Future value of an investment")
    project.add_argument("present_value", type=float)
    project.add_argument("rate", type=float, help="Annual return as a decimal")
    project.add_argument("years", type=float)

    irr = sub.add_parser("irr", help="Dollar-weighted return of dated cash flows")
    irr.add_argument(
        "flows",
        nargs="+",
        type=parse_cash_flow,
        help="YYYY-MM-DD=AMOUNT; contributions negative, ending value positive",
    )

    return p


def _config_from_args(args: argparse.Namespace) -> AnalysisConfig:
    config = AnalysisConfig.from_env()
    updates: dict = {}
    if getattr(args, "years", None):
        updates["history_years"] = args.years
    if getattr(args, "strict", False):
        updates["renormalize_on_exclusion"] = False
    return config.model_copy(update=updates) if updates else config


def _run_engine(
    config: AnalysisConfig,
    status: str,
    op: Callable[[PortfolioRiskEngine], Awaitable[T]],
) -> T:
    provider = MarketDataProvider(config)
    engine = PortfolioRiskEngine(provider, config)
    try:
        with console.status(f"[cyan]{status}"):
            return asyncio.run(op(engine))
    finally:
        engine.close()
        provider.close()


def _run_analyze(args: argparse.Namespace) -> None:
    holdings = [parse_holding(h, args.values) for h in args.holdings]
    config = _config_from_args(args)
    bundle = _run_engine(
        config,
        f"Analyzing {len(holdings)} holdings...",
        lambda engine: engine.analyze(holdings),
    )
    ReportRenderer(console).render(bundle)


def _run_volatility(args: argparse.Namespace) -> None:
    holdings = [parse_holding(h, args.values) for h in args.holdings]
    config = _config_from_args(args)
    report = _run_engine(
        config,
        "Building covariance matrix...",
        lambda engine: engine.volatility(holdings),
    )
    ReportRenderer(console).render_volatility(report)


def _run_market(args: argparse.Namespace) -> None:
    context = _run_engine(
        _config_from_args(args),
        "Fetching market data...",
        lambda engine: engine.market_context(),
    )
    ReportRenderer(console).render_market(context)


def _run_benchmarks(args: argparse.Namespace) -> None:
    funds = _run_engine(
        _config_from_args(args),
        "Fetching benchmark funds...",
        lambda engine: engine.benchmark_performance(),
    )
    ReportRenderer(console).render_benchmarks(funds)


def _run_project(args: argparse.Namespace) -> None:
    fv = future_value(args.present_value, args.rate, args.years)
    console.print(
        f"{fmt_price(args.present_value)} at {fmt_rate(args.rate)} for "
        f"{args.years:g} years -> [bold]{fmt_price(fv)}[/bold]"
    )


def _run_irr(args: argparse.Namespace) -> None:
    rate = dollar_weighted_return(args.flows)
    console.print(f"Dollar-weighted return: [bold]{fmt_rate(rate)}[/bold]")


COMMANDS = {
    "analyze": _run_analyze,
    "volatility": _run_volatility,
    "market": _run_market,
    "benchmarks": _run_benchmarks,
    "project": _run_project,
    "irr": _run_irr,
}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(1)
    except (PortfolioAnalyticsError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
